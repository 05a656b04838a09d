"""Application use cases grouped by bounded area: registration, admin, content."""
