"""
Database models for the short URL service.

Only the durable store has a table; the in-memory fallback keeps plain
UrlRecord values.
"""

from .url import UrlRecordRow

__all__ = ["UrlRecordRow"]
