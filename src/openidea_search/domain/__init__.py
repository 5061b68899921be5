"""Domain layer: the canonical resource model."""
