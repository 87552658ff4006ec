"""HTTP API for the basket index service."""

from .main import create_app, get_app

__all__ = ["create_app", "get_app"]
