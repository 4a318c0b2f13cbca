"""Command line interface for DraftCraft."""

from .main import cli

__all__ = ["cli"]
