"""Utility modules for the Circle Engine."""

from .config import Settings, get_settings
from .throttle import Throttle

__all__ = [
    "Settings",
    "get_settings",
    "Throttle",
]
