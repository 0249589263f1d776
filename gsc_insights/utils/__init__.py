"""Utility modules for GSC Insights."""

from .config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
