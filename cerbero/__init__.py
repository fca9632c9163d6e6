"""Self-hosted file sharing server."""

__version__ = "1.1.0"
