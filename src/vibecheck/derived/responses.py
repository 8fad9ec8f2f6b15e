"""
Reply composition from a sentiment score and category.

Reply layout:
    "{emoji} Hey @{handle}! {message} {detail} {suggestion}"

The emoji comes from its own threshold table. Message and suggestion are
drawn independently and uniformly from the category's variant pools through
an injectable RandomSource; a single-entry pool always yields that entry.
Fragments may reference {score}, {post_count}, {category} and {handle}.
"""

import logging
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from vibecheck.derived.categories import ConfigError, ThresholdTable

APOLOGY_TEMPLATE = (
    "Sorry @{handle}, I hit an error while analyzing your sentiment. "
    "This is a bug, and the creator has been notified."
)
GREETING_TEMPLATE = "Hey @{handle}!"


class RandomSource(ABC):
    """Source of random indices for variant selection."""

    @abstractmethod
    def next(self, bound: int) -> int:
        """Return an index in [0, bound)."""
        pass


class PythonRandomSource(RandomSource):
    """Uniform indices from a (optionally seeded) `random.Random`."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def next(self, bound: int) -> int:
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        with self._lock:
            return self._random.randrange(bound)


class SequenceRandomSource(RandomSource):
    """Replays fixed indices (modulo bound), cycling when exhausted."""

    def __init__(self, values: Iterable[int] = (0,)):
        self._values = list(values) or [0]
        self._position = 0
        self._lock = threading.Lock()

    def next(self, bound: int) -> int:
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        with self._lock:
            value = self._values[self._position % len(self._values)]
            self._position += 1
        return value % bound


@dataclass(frozen=True)
class ResponseTemplate:
    """Variant pools for one sentiment category."""

    messages: Tuple[str, ...]
    suggestions: Tuple[str, ...]
    detail: str = ""

    @classmethod
    def from_dict(cls, category: str, data: Mapping) -> "ResponseTemplate":
        """
        Build from a config mapping with `messages`, `suggestions` and `detail`.

        Single strings are accepted in place of one-item lists.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"responses.{category}: expected a mapping, got {type(data).__name__}")

        def _pool(key: str) -> Tuple[str, ...]:
            value = data.get(key)
            if isinstance(value, str):
                value = [value]
            if not value:
                raise ConfigError(f"responses.{category}: '{key}' pool is empty")
            return tuple(str(v) for v in value)

        return cls(
            messages=_pool("messages"),
            suggestions=_pool("suggestions"),
            detail=str(data.get("detail") or "")
        )


def format_score(score: float) -> str:
    """
    Two-decimal score with sign, trailing zeros stripped.

    >>> format_score(1.5), format_score(-2.0), format_score(0), format_score(0.123)
    ('+1.5', '-2', '+0', '+0.12')
    """
    text = f"{score:.2f}"
    if float(text) == 0:
        return "+0"
    text = text.rstrip("0").rstrip(".")
    return text if text.startswith("-") else "+" + text


def render_apology(handle: str) -> str:
    """Fixed reply sent when analysis fails."""
    return APOLOGY_TEMPLATE.format(handle=handle.lstrip("@"))


class ResponseComposer:
    """
    Assembles the reply text for an analyzed user.

    Example:
        >>> composer = ResponseComposer(categories, emoji, templates,
        ...                             random_source=SequenceRandomSource([0]))
        >>> composer.compose("alice.bsky.social", 0.5, "slightly positive", 100)
        "😊 Hey @alice.bsky.social! There's a hint of sunshine ..."
    """

    def __init__(
        self,
        category_table: ThresholdTable,
        emoji_table: ThresholdTable,
        templates: Mapping[str, ResponseTemplate],
        random_source: Optional[RandomSource] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        :param category_table: Table whose labels key the templates
        :param emoji_table: Finer table mapping scores to emoji
        :param templates: Category label -> ResponseTemplate
        :param random_source: Variant selector (defaults to unseeded PythonRandomSource)
        :param logger: Optional logger
        :raises ConfigError: a category has no template, an empty pool, or a
            fragment that does not render (stray brace, unknown placeholder)
        """
        self.category_table = category_table
        self.emoji_table = emoji_table
        self.templates = dict(templates)
        self.random_source = random_source or PythonRandomSource()
        self.logger = logger or logging.getLogger(__name__)
        self._validate()

    def _validate(self) -> None:
        missing = [label for label in self.category_table.labels if label not in self.templates]
        if missing:
            raise ConfigError(f"responses: no template for categories {missing}")
        for label, template in self.templates.items():
            if not template.messages or not template.suggestions:
                raise ConfigError(f"responses.{label}: variant pools must be non-empty")

            sample = self._fields("handle.example", 0.0, label, 100)
            for fragment in (*template.messages, template.detail, *template.suggestions):
                try:
                    fragment.format(**sample)
                except (KeyError, ValueError, IndexError, AttributeError) as e:
                    raise ConfigError(
                        f"responses.{label}: cannot render {fragment!r} ({type(e).__name__}: {e})"
                    ) from e

    @staticmethod
    def _fields(handle: str, score: float, category: str, post_count: int) -> dict:
        return {
            "handle": handle,
            "score": format_score(score),
            "post_count": post_count,
            "category": category,
        }

    def _choose(self, pool: Sequence[str]) -> str:
        if len(pool) == 1:
            return pool[0]
        return pool[self.random_source.next(len(pool))]

    def emoji_for(self, score: float) -> str:
        return self.emoji_table.lookup(score)

    def compose(
        self,
        handle: str,
        score: float,
        category: str,
        post_count: int = 100
    ) -> str:
        """
        Render the reply.

        :param handle: User handle (leading '@' optional)
        :param score: Aggregate sentiment score
        :param category: Category label from the category table
        :param post_count: Number of posts analyzed
        :return: Reply text
        """
        handle = handle.lstrip("@")
        template = self.templates.get(category)
        if template is None:
            self.logger.warning(f"Unknown category '{category}', using '{self.category_table.neutral}'")
            category = self.category_table.neutral
            template = self.templates[category]

        fields = self._fields(handle, score, category, post_count)

        message = self._choose(template.messages)
        suggestion = self._choose(template.suggestions)

        fragments = [
            self.emoji_for(score),
            GREETING_TEMPLATE.format(**fields),
            message.format(**fields),
            template.detail.format(**fields),
            suggestion.format(**fields),
        ]
        return " ".join(f for f in fragments if f)
