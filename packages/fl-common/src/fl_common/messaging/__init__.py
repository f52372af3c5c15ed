"""
Messaging utilities for FeedLens.

This package provides the Redis client wrapper backing the job queue and
the Celery application running scheduled queue maintenance.
"""
