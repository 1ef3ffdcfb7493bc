"""Web front-end for the ShiurBank player."""

from .server import create_app, normalize_root_path

__all__ = ["create_app", "normalize_root_path"]
