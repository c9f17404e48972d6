"""Selection and folder navigation."""
