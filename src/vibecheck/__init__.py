"""Bluesky mention bot that replies with the sentiment of your recent posts."""

__version__ = "0.3.0"
