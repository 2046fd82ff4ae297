"""Core orchestration for live_ladder: publish handling and the modules it drives."""
