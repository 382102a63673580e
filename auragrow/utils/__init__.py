"""Utility helpers for caching, formatting and chart rendering."""

from .cache import CACHE_TTL_MS, JsonFileStore, MemoryStore, ResponseCache
from .formatters import format_percent, format_time_ago, format_usd, format_years

__all__ = [
    "CACHE_TTL_MS",
    "JsonFileStore",
    "MemoryStore",
    "ResponseCache",
    "format_percent",
    "format_time_ago",
    "format_usd",
    "format_years",
]
