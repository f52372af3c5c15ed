"""
FeedLens analysis service.

Heuristic sentiment classifier, keyword intent tagger, AI inference
client, and the orchestrator racing the AI call against a timeout.
"""
