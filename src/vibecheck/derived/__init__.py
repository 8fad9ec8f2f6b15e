"""Sentiment scoring, categorization and reply composition."""
