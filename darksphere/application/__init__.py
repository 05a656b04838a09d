"""Application layer: use cases and startup tasks."""
