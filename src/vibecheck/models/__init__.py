"""
Per-text sentiment models.

This module provides:
- SentimentModel ABC: Base class for per-text sentiment models
- TextScore: Dataclass for a scored post
- LexiconModel: Word-lexicon implementation using the VADER lexicon
"""

from vibecheck.models.base import SentimentModel, TextScore
from vibecheck.models.lexicon import LexiconModel, tokenize

__all__ = ["SentimentModel", "TextScore", "LexiconModel", "tokenize"]
