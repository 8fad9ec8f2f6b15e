"""
Lexicon sentiment model.

Scores a post by summing per-word polarity weights from the VADER lexicon
(vaderSentiment) and normalizing by token count. A token directly preceded
by a negator ("not", "don't", ...) contributes with its sign flipped.
"""

import logging
import re
import threading
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from vibecheck.models.base import SentimentModel, TextScore

DEFAULT_LANGUAGE = "en"

# Anything that is not a word character, whitespace, apostrophe or hyphen
_PUNCTUATION = re.compile(r"[^\w\s'\-]+")


def tokenize(text: Optional[str]) -> List[str]:
    """
    Split a post body into lower-case word tokens.

    Punctuation is dropped; apostrophes and hyphens inside words are kept
    so contractions like "don't" survive.

    :param text: Raw post text (None treated as empty)
    :return: List of tokens (possibly empty)
    """
    if not text:
        return []
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    tokens = []
    for raw in cleaned.split():
        token = raw.strip("'-")
        if token:
            tokens.append(token)
    return tokens


class LexiconModel(SentimentModel):
    """
    Word-lexicon sentiment model backed by the VADER lexicon.

    Features:
    - Lazy loading: lexicon read on first predict() call
    - Injectable lexicon: pass `lexicon=` to skip vaderSentiment entirely
    - Per-call extras: extra weights merged over the base lexicon
    - Language hint: selects a registered lexicon, English otherwise

    Example:
        >>> model = LexiconModel()
        >>> result = model.predict(["I love this!"])[0]
        >>> result.comparative > 0
        True
    """

    MODEL_ID = "vader-lexicon"
    MODEL_VERSION = "1.0.0"  # Track for reproducibility

    def __init__(
        self,
        lexicon: Optional[Mapping[str, float]] = None,
        negators: Optional[Iterable[str]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize lexicon model.

        :param lexicon: Base English lexicon (None to load VADER lazily)
        :param negators: Negation words (None to use VADER's list)
        :param logger: Optional logger instance
        """
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._languages: Dict[str, Tuple[Dict[str, float], FrozenSet[str]]] = {}
        self._loaded = False

        self._base_lexicon = (
            {word.lower(): float(weight) for word, weight in lexicon.items()}
            if lexicon is not None else None
        )
        self._base_negators = frozenset(n.lower() for n in negators) if negators is not None else None
        if self._base_lexicon is not None and self._base_negators is not None:
            self._languages[DEFAULT_LANGUAGE] = (self._base_lexicon, self._base_negators)
            self._loaded = True

    @property
    def name(self) -> str:
        return self.MODEL_ID

    @property
    def version(self) -> str:
        return self.MODEL_VERSION

    @property
    def languages(self) -> List[str]:
        return sorted(self._languages)

    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Load the VADER lexicon and negation list for English."""
        if self._loaded:
            return

        with self._lock:
            if self._loaded:
                return

            # A lexicon registered for "en" before the first load wins
            if DEFAULT_LANGUAGE in self._languages:
                self._loaded = True
                return

            lexicon = self._base_lexicon
            negators = self._base_negators
            if lexicon is None or negators is None:
                try:
                    from vaderSentiment.vaderSentiment import (
                        NEGATE,
                        SentimentIntensityAnalyzer
                    )
                except ImportError as e:
                    raise ImportError(
                        "vaderSentiment is required for the default lexicon. "
                        "Install with: pip install vaderSentiment"
                    ) from e

                if lexicon is None:
                    self._logger.info("Loading VADER lexicon...")
                    lexicon = dict(SentimentIntensityAnalyzer().lexicon)
                if negators is None:
                    negators = frozenset(n.lower() for n in NEGATE)

            self._languages[DEFAULT_LANGUAGE] = (lexicon, negators)
            self._loaded = True
            self._logger.info(f"Lexicon loaded ({len(lexicon)} words, {len(negators)} negators)")

    def register_language(
        self,
        language: str,
        lexicon: Mapping[str, float],
        negators: Iterable[str] = ()
    ) -> None:
        """
        Register a lexicon for a language hint.

        :param language: Language code (e.g., 'es')
        :param lexicon: Word -> weight mapping
        :param negators: Negation words for that language
        """
        with self._lock:
            self._languages[language.lower()] = (
                {word.lower(): float(weight) for word, weight in lexicon.items()},
                frozenset(n.lower() for n in negators)
            )

    def _resolve_language(self, language: Optional[str]) -> Tuple[Dict[str, float], FrozenSet[str]]:
        code = (language or DEFAULT_LANGUAGE).lower()
        if code in self._languages:
            return self._languages[code]
        self._logger.debug(f"No lexicon registered for language '{code}', using '{DEFAULT_LANGUAGE}'")
        return self._languages[DEFAULT_LANGUAGE]

    def score_text(
        self,
        text: str,
        lexicon: Mapping[str, float],
        negators: FrozenSet[str]
    ) -> TextScore:
        """Score one text against an already-resolved lexicon."""
        tokens = tokenize(text)
        total = 0.0
        positive = []
        negative = []

        for i, token in enumerate(tokens):
            weight = lexicon.get(token)
            if not weight:
                continue
            if i > 0 and tokens[i - 1] in negators:
                weight = -weight
            total += weight
            if weight > 0:
                positive.append(token)
            else:
                negative.append(token)

        comparative = total / len(tokens) if tokens else 0.0
        text = text or ""

        return TextScore(
            text_chunk=text[:100] + "..." if len(text) > 100 else text,
            score=total,
            comparative=comparative,
            token_count=len(tokens),
            model_name=self.name,
            model_version=self.version,
            positive=tuple(positive),
            negative=tuple(negative)
        )

    def predict(
        self,
        texts: List[str],
        language: Optional[str] = None,
        extra_lexicon: Optional[Mapping[str, float]] = None
    ) -> List[TextScore]:
        """
        Score each text.

        :param texts: Post bodies
        :param language: Optional language hint
        :param extra_lexicon: Extra weights; win over base weights for the same word
        :return: List of TextScore in input order
        """
        if not texts:
            return []

        # Lazy load on first call
        if not self._loaded:
            self.load()

        lexicon, negators = self._resolve_language(language)
        if extra_lexicon:
            lexicon = {**lexicon, **{w.lower(): float(v) for w, v in extra_lexicon.items()}}

        return [self.score_text(text, lexicon, negators) for text in texts]

    def unload(self) -> None:
        """Drop loaded lexicons."""
        if not self._loaded:
            return

        with self._lock:
            self._languages.clear()
            self._loaded = False
            if self._base_lexicon is not None and self._base_negators is not None:
                self._languages[DEFAULT_LANGUAGE] = (self._base_lexicon, self._base_negators)
                self._loaded = True
            self._logger.info("Lexicon unloaded")
