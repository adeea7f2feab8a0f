"""Core module: logging setup and correlation context."""
