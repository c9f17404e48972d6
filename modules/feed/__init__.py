"""Image feed polling."""
