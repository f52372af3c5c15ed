"""
FeedLens pipeline service.

Durable job queue, queue worker, result store and the feedback service
facade shared by the API gateway and the worker process.
"""
