"""Runtime and wire models."""
