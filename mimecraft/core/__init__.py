"""Core message model, serialization and delivery."""
