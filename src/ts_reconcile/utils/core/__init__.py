"""Core utilities: error taxonomy and version information."""
