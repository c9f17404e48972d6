"""Core infrastructure: models, interfaces, event bus, configuration."""
