"""Image analysis pipeline."""
