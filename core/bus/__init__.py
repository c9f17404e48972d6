"""Event bus."""
