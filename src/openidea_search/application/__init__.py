"""Application layer: search orchestration."""
