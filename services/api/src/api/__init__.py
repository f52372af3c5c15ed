"""
FeedLens REST API Gateway.

FastAPI-based HTTP server exposing feedback submission (inline and
queued), result lookup, per-user history and statistics, and queue
health over the shared pipeline.
"""
