"""Domain layer: entities, audit model, repository ports and pure policies."""
