"""Infrastructure layer: external provider integrations."""
