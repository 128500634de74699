"""Core utilities: configuration, logging, errors."""
