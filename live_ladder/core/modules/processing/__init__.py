"""Session tracking, transcoder supervision and artifact cleanup."""
