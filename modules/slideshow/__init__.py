"""Slideshow state machine."""
