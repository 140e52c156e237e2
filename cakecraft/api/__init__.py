"""
HTTP API for CakeCraft.
"""

from .app import create_app

__all__ = ["create_app"]
