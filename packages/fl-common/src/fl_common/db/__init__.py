"""
Database connection and ORM utilities for FeedLens.

This package provides async database connection management via SQLAlchemy
and the ORM mapping of the ``feedback_results`` table.
"""

from fl_common.db.connection import (
    build_engine,
    build_session_factory,
    check_database_health,
)
from fl_common.db.orm_models import Base, FeedbackResultORM

__all__ = [
    "Base",
    "FeedbackResultORM",
    "build_engine",
    "build_session_factory",
    "check_database_health",
]
