"""Infrastructure layer: store adapters, caches, pool, retry."""
