"""
API router package for FeedLens.

Contains the feedback router and the root health router.
"""
