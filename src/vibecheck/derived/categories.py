"""
Threshold tables mapping a sentiment score to a label.

A table is an ordered list of (upper_bound, label) entries. A score belongs to
the first entry whose bound is >= the score, so a score equal to a bound falls
in the lower band. The last bound should be +inf; if it is not (or the score is
NaN) the table's neutral label is returned.

The same structure serves the category table and the finer emoji table.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Invalid sentiment configuration (tables, templates, credentials)."""


class ThresholdTable:
    """
    Ordered (upper_bound, label) bands over the real line.

    Example:
        >>> table = ThresholdTable([(-0.25, "mean"), (-0.1, "neutral"), (0.1, "nice"),
        ...                         (math.inf, "very nice")], neutral="neutral")
        >>> table.lookup(-0.1)
        'neutral'
    """

    def __init__(
        self,
        entries: Iterable[Tuple[float, str]],
        neutral: str,
        name: str = "categories"
    ):
        """
        :param entries: (upper_bound, label) pairs, strictly increasing by bound
        :param neutral: Label returned when no entry matches
        :param name: Table name for error messages
        :raises ConfigError: empty table, non-increasing bounds, unknown neutral label
        """
        self.name = name
        self.entries: Tuple[Tuple[float, str], ...] = tuple(
            (float(bound), str(label)) for bound, label in entries
        )
        self.neutral = neutral
        self._validate()

    def _validate(self) -> None:
        if not self.entries:
            raise ConfigError(f"{self.name}: threshold table is empty")

        bounds = [bound for bound, _ in self.entries]
        for bound in bounds:
            if math.isnan(bound):
                raise ConfigError(f"{self.name}: NaN threshold")
        for lower, upper in zip(bounds, bounds[1:]):
            if upper <= lower:
                raise ConfigError(
                    f"{self.name}: thresholds must be strictly increasing ({lower} then {upper})"
                )

        if self.neutral not in self.labels:
            raise ConfigError(f"{self.name}: neutral label '{self.neutral}' not in table")

        if not math.isinf(bounds[-1]):
            logger.warning(
                f"{self.name}: last threshold is {bounds[-1]}, not +inf; "
                f"higher scores fall back to '{self.neutral}'"
            )

    @property
    def labels(self) -> List[str]:
        return [label for _, label in self.entries]

    @property
    def bounds(self) -> List[float]:
        return [bound for bound, _ in self.entries]

    def lookup(self, score: float) -> str:
        """Label of the first band whose upper bound is >= score."""
        for bound, label in self.entries:
            if score <= bound:
                return label
        return self.neutral

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __repr__(self) -> str:
        return f"ThresholdTable(name={self.name!r}, entries={list(self.entries)!r}, neutral={self.neutral!r})"


def classify(score: float, table: ThresholdTable) -> str:
    """
    Map a score to a sentiment category.

    :param score: Aggregate sentiment score
    :param table: Category threshold table
    :return: Category label (never raises)
    """
    return table.lookup(score)


def build_table(
    rows: Sequence[dict],
    value_key: str,
    neutral: Optional[str],
    name: str
) -> ThresholdTable:
    """
    Build a table from config rows like {"bound": -0.5, "label": "negative"}.

    A missing bound or `.inf` means +inf. When `neutral` is None the label of
    the band containing 0 is used.
    """
    if not rows:
        raise ConfigError(f"{name}: no entries configured")

    entries = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict) or value_key not in row:
            raise ConfigError(f"{name}: entry {i} needs a '{value_key}' key")
        bound = row.get("bound")
        try:
            bound = math.inf if bound is None else float(bound)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name}: entry {i} has invalid bound {row.get('bound')!r}") from e
        entries.append((bound, str(row[value_key])))

    if neutral is None:
        neutral = next((label for bound, label in entries if 0.0 <= bound), entries[-1][1])

    return ThresholdTable(entries, neutral=neutral, name=name)
