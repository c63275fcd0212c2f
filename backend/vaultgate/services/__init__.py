"""Domain services: session recording and predictions.

Imported by HTTP routes and socket handlers, keeping transport concerns
separated from persistence and content generation.
"""
