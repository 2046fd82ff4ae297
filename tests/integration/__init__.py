"""Integration tests exercising real processes and the hook server."""
