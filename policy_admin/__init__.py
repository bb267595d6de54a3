"""Policy Admin API: authentication and lifecycle management for policy documents."""

__version__ = "0.3.0"
