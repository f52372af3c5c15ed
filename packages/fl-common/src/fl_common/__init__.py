"""
fl-common: Shared library for FeedLens.

Provides common data models, configuration management, database connections,
messaging utilities, structured logging, and Prometheus metrics helpers
used across all FeedLens services.
"""

from fl_common.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
