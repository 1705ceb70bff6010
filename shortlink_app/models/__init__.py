"""
Database models for the shortlink service.

ShortUrl holds the slug -> target mapping and the aggregate click counter.
ClickLog holds one row per recorded click.
"""

from .short_url import ShortUrl
from .click_log import ClickLog

__all__ = ["ShortUrl", "ClickLog"]
