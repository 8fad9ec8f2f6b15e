"""
Mention bot.

Polls the bot account's notifications and answers each mention with a reply
describing the mentioning user's recent tone. Mentions from one poll are
handled in parallel on a thread pool; each one runs
fetch -> aggregate -> classify -> compose -> reply sequentially.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from vibecheck.bluesky.client import BlueskyClient, Mention, now_iso
from vibecheck.config.config_loader import SentimentConfig
from vibecheck.derived.categories import classify
from vibecheck.derived.responses import ResponseComposer, render_apology
from vibecheck.derived.score import ScoreAggregator, ScoreSummary

HANDLED_HISTORY = 1000


@dataclass
class AnalysisResult:
    """Outcome of analyzing one user."""

    handle: str
    post_count: int
    score: float
    category: str
    summary: ScoreSummary
    reply: str


class MentionBot:
    """
    Answers mentions with a sentiment reply.

    Example:
        >>> bot = MentionBot(client, SentimentConfig())
        >>> bot.run(interval=15)
    """

    def __init__(
        self,
        client: BlueskyClient,
        config: SentimentConfig,
        aggregator: Optional[ScoreAggregator] = None,
        composer: Optional[ResponseComposer] = None,
        max_workers: int = 4,
        logger: Optional[logging.Logger] = None
    ):
        """
        :param client: Logged-in Bluesky client
        :param config: Tables and templates
        :param aggregator: Score aggregator (default: VADER lexicon)
        :param composer: Reply composer (default: built from config)
        :param max_workers: Mentions analyzed in parallel per poll
        :param logger: Optional logger
        """
        self.client = client
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.aggregator = aggregator or ScoreAggregator(logger=self.logger)
        self.composer = composer or config.build_composer()
        self.max_workers = max_workers

        self._handled = deque(maxlen=HANDLED_HISTORY)
        self._handled_lock = threading.Lock()

        # Stats
        self.success = 0
        self.failed = 0
        self.skipped = 0
        self._stats_lock = threading.Lock()

    def _count(self, field: str) -> None:
        with self._stats_lock:
            setattr(self, field, getattr(self, field) + 1)

    def analyze(self, handle: str) -> AnalysisResult:
        """
        Fetch a user's recent posts and compose the reply for them.

        :param handle: User handle
        :return: AnalysisResult (reply not sent)
        """
        self.logger.info(f"Analyzing user {handle}")
        texts = self.client.list_post_texts(handle, limit=self.config.post_limit)

        result = analyze_texts(handle, texts, self.config, self.aggregator, self.composer)
        self.logger.info(f"{handle} has a sentiment score of {result.score} ({result.category})")
        return result

    def _claim(self, mention: Mention) -> bool:
        with self._handled_lock:
            if mention.uri in self._handled:
                return False
            self._handled.append(mention.uri)
            return True

    def handle_mention(self, mention: Mention) -> bool:
        """
        Analyze the author of a mention and reply.

        Failures are answered with an apology; a failed apology is logged only.

        :return: True if the sentiment reply was posted
        """
        handle = mention.author_handle

        if mention.author_did and mention.author_did == self.client.did:
            self.logger.debug(f"Ignoring self-mention {mention.uri}")
            self._count('skipped')
            return False
        if not self._claim(mention):
            self.logger.debug(f"Already handled {mention.uri}")
            self._count('skipped')
            return False

        try:
            result = self.analyze(handle)
            self.client.reply(mention, result.reply, with_facets=True)
            self._count('success')
            return True
        except Exception as e:
            self.logger.error(f"Error analyzing user {handle}: {e}")
            self._count('failed')
            try:
                self.client.reply(mention, render_apology(handle), with_facets=True)
            except Exception as reply_error:
                self.logger.error(f"Error replying to user {handle}: {reply_error}")
            return False

    def poll_once(self) -> int:
        """
        Handle all unread mentions once.

        :return: Number of mentions seen
        """
        seen_at = now_iso()
        mentions = self.client.list_mentions()
        if not mentions:
            return 0

        self.logger.info(f"Processing {len(mentions)} mentions")
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.handle_mention, m) for m in mentions]
            for future in as_completed(futures):
                future.result()

        self.client.update_seen(seen_at)
        return len(mentions)

    def run(
        self,
        interval: float = 10.0,
        max_cycles: Optional[int] = None,
        stop_event: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        """
        Poll for mentions until stopped.

        :param interval: Seconds between polls
        :param max_cycles: Stop after this many polls (None = forever)
        :param stop_event: Optional event that ends the loop when set
        :return: Stats dict
        """
        stop_event = stop_event or threading.Event()
        start_time = time.time()
        cycles = 0

        self.logger.info(f"Bot running as {self.client.handle}, polling every {interval}s")
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                self.logger.error(f"Poll failed: {e}")

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            stop_event.wait(interval)

        return self.stats(start_time)

    def stats(self, start_time: Optional[float] = None) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'success': self.success,
            'failed': self.failed,
            'skipped': self.skipped,
        }
        if start_time is not None:
            result['elapsed_seconds'] = round(time.time() - start_time, 1)
        return result


def analyze_texts(
    handle: str,
    texts: List[str],
    config: SentimentConfig,
    aggregator: Optional[ScoreAggregator] = None,
    composer: Optional[ResponseComposer] = None
) -> AnalysisResult:
    """Offline pipeline over already-fetched texts (no network)."""
    aggregator = aggregator or ScoreAggregator()
    composer = composer or config.build_composer()

    summary = aggregator.summarize(texts)
    category = classify(summary.score, config.category_table)
    return AnalysisResult(
        handle=handle,
        post_count=len(texts),
        score=summary.score,
        category=category,
        summary=summary,
        reply=composer.compose(handle, summary.score, category, len(texts))
    )
