"""FFmpeg ladder construction: profiles, filter graph, command."""
