"""Unit tests for live_ladder modules."""
