"""Process-level integrations: ingest hooks and resource monitoring."""
