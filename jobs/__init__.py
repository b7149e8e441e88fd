"""Background jobs: deposit monitor worker and its health server."""
