"""Admin HTTP API."""

from .main import app

__all__ = ["app"]
