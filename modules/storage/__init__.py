"""Object storage providers and client."""
