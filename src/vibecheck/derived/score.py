"""
Aggregate sentiment score across a user's recent posts.

Each post gets a comparative score (lexicon weight sum / token count) from
the sentiment model; the user's score is the arithmetic mean of those.
"""

import logging
import statistics
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Mapping, Optional, Sequence

from vibecheck.models.base import SentimentModel, TextScore
from vibecheck.models.lexicon import LexiconModel


@dataclass
class ScoreSummary:
    """Aggregated sentiment for one batch of posts."""

    score: float  # Mean comparative score, 0.0 for no posts
    text_count: int
    positive_ratio: float
    negative_ratio: float
    neutral_ratio: float
    score_std: float  # Std dev of per-post comparative scores
    score_range: float  # Max - min comparative score

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "text_count": self.text_count,
            "positive_ratio": self.positive_ratio,
            "negative_ratio": self.negative_ratio,
            "neutral_ratio": self.neutral_ratio,
            "score_std": self.score_std,
            "score_range": self.score_range,
        }


def mean_comparative(results: Sequence[TextScore]) -> float:
    """Arithmetic mean of comparative scores (0.0 for none)."""
    if not results:
        return 0.0
    return sum(r.comparative for r in results) / len(results)


def _summarize_results(results: List[TextScore]) -> ScoreSummary:
    total = len(results)
    if total == 0:
        return ScoreSummary(
            score=0.0,
            text_count=0,
            positive_ratio=0.0,
            negative_ratio=0.0,
            neutral_ratio=0.0,
            score_std=0.0,
            score_range=0.0
        )

    comparatives = [r.comparative for r in results]
    positive_count = sum(1 for c in comparatives if c > 0)
    negative_count = sum(1 for c in comparatives if c < 0)

    return ScoreSummary(
        score=mean_comparative(results),
        text_count=total,
        positive_ratio=round(positive_count / total, 4),
        negative_ratio=round(negative_count / total, 4),
        neutral_ratio=round((total - positive_count - negative_count) / total, 4),
        score_std=round(statistics.stdev(comparatives), 4) if total > 1 else 0.0,
        score_range=round(max(comparatives) - min(comparatives), 4)
    )


class ScoreAggregator:
    """
    Converts a collection of post bodies into one sentiment score.

    Example:
        >>> aggregator = ScoreAggregator()
        >>> aggregator.aggregate([])
        0.0
    """

    def __init__(
        self,
        model: Optional[SentimentModel] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        :param model: Per-text model (defaults to a lazily loaded LexiconModel)
        :param logger: Optional logger
        """
        self.logger = logger or logging.getLogger(__name__)
        self.model = model or LexiconModel(logger=self.logger)

    def score_texts(
        self,
        texts: Sequence[str],
        language: Optional[str] = None,
        extra_lexicon: Optional[Mapping[str, float]] = None
    ) -> List[TextScore]:
        """Per-text scores, in input order."""
        if not texts:
            return []
        return self.model.predict(list(texts), language=language, extra_lexicon=extra_lexicon)

    def aggregate(
        self,
        texts: Sequence[str],
        language: Optional[str] = None,
        extra_lexicon: Optional[Mapping[str, float]] = None
    ) -> float:
        """
        Mean comparative score of the texts.

        :param texts: Zero or more post bodies
        :param language: Optional language hint
        :param extra_lexicon: Extra word weights merged into the base lexicon
        :return: Sentiment score (exactly 0.0 for empty input)
        """
        return mean_comparative(self.score_texts(texts, language, extra_lexicon))

    def summarize(
        self,
        texts: Sequence[str],
        language: Optional[str] = None,
        extra_lexicon: Optional[Mapping[str, float]] = None
    ) -> ScoreSummary:
        """
        Score plus distribution metrics for logging.

        :return: ScoreSummary whose `score` equals aggregate() for the same input
        """
        summary = _summarize_results(self.score_texts(texts, language, extra_lexicon))
        self.logger.debug(
            f"Scored {summary.text_count} texts: score={summary.score:.4f} "
            f"pos={summary.positive_ratio} neg={summary.negative_ratio} std={summary.score_std}"
        )
        return summary


@lru_cache(maxsize=1)
def _default_aggregator() -> ScoreAggregator:
    return ScoreAggregator()


def aggregate_score(
    texts: Sequence[str],
    language: Optional[str] = None,
    extra_lexicon: Optional[Mapping[str, float]] = None,
    model: Optional[SentimentModel] = None
) -> float:
    """Convenience wrapper around ScoreAggregator.aggregate()."""
    aggregator = ScoreAggregator(model=model) if model is not None else _default_aggregator()
    return aggregator.aggregate(texts, language, extra_lexicon)
