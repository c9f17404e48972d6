"""Configuration loading and per-user persistence."""
