"""Command line interface for chatkeep."""

from .main import app

__all__ = ["app"]
