"""Inference provider implementations."""
