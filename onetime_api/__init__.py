"""
onetime_api package — small Flask HTTP surface over the onetime engine.

Engines live in process memory only; nothing is written to disk.
"""

from .app import create_app

__all__ = ['create_app']
