"""
Durable storage module for short URL records.

This module implements the Strategy Pattern for pluggable record storage.
"""

from .strategies import URLStorageStrategy, SQLAlchemyURLStorage

__all__ = [
    "URLStorageStrategy",
    "SQLAlchemyURLStorage",
]
