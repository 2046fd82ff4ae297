"""Shared utilities for live_ladder."""
