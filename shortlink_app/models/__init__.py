"""
Database models for the short link service.

View counters and URL mappings live in the cache, not here; this package
holds the durable records only.
"""

from .url import ShortURL

__all__ = ["ShortURL"]
