"""Provider interfaces and event definitions."""
