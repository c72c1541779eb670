"""tracer - link git commits and file changes to development stories."""

__version__ = "0.3.0"
