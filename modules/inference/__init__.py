"""AI inference providers and client."""
