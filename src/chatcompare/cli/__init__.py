"""Command-line interface for chatcompare."""

from .app import app, main

__all__ = ["app", "main"]
