"""
Base classes for per-text sentiment models.

Provides abstract interface for sentiment models and result dataclass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple


@dataclass
class TextScore:
    """Result of scoring a single post body."""

    text_chunk: str
    score: float  # Sum of matched lexicon weights
    comparative: float  # score / token_count
    token_count: int
    model_name: str
    model_version: str
    positive: Tuple[str, ...] = field(default_factory=tuple)
    negative: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "text_chunk": self.text_chunk,
            "score": self.score,
            "comparative": self.comparative,
            "token_count": self.token_count,
            "positive": list(self.positive),
            "negative": list(self.negative),
            "model_name": self.model_name,
            "model_version": self.model_version,
        }


class SentimentModel(ABC):
    """Abstract base class for per-text sentiment models."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Model name identifier (e.g., 'vader-lexicon')."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Model version for reproducibility."""
        pass

    @abstractmethod
    def load(self) -> None:
        """Load model data into memory. Called lazily on first predict."""
        pass

    @abstractmethod
    def predict(
        self,
        texts: List[str],
        language: Optional[str] = None,
        extra_lexicon: Optional[Mapping[str, float]] = None
    ) -> List[TextScore]:
        """
        Score a batch of texts.

        :param texts: Post bodies to analyze
        :param language: Optional language hint
        :param extra_lexicon: Extra word weights merged over the base lexicon
        :return: One TextScore per input text, in order
        """
        pass

    @abstractmethod
    def unload(self) -> None:
        """Release model data from memory."""
        pass

    def is_loaded(self) -> bool:
        """Check if model is currently loaded."""
        return False
