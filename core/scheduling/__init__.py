"""Event loop timers."""
