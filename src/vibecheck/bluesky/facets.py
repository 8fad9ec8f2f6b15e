"""
Rich-text facet detection for outgoing posts.

Bluesky stores mentions and links as facets: annotations over UTF-8 byte
ranges of the post text. Mentions need the handle resolved to a DID; handles
that fail to resolve are left as plain text.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

MENTION_PATTERN = re.compile(
    rb"(?:^|\W)(@([a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+"
    rb"[a-zA-Z](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)"
)
LINK_PATTERN = re.compile(
    rb"(?:^|\W)(https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    rb"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*[-a-zA-Z0-9@%_+~#/=])?)"
)

MENTION_TYPE = "app.bsky.richtext.facet#mention"
LINK_TYPE = "app.bsky.richtext.facet#link"


@dataclass(frozen=True)
class FacetSpan:
    """A detected mention or link with its UTF-8 byte range."""

    kind: str  # "mention" or "link"
    value: str  # Handle without '@', or URL
    byte_start: int
    byte_end: int


def detect_facets(text: str) -> List[FacetSpan]:
    """
    Find mentions and links in post text.

    :param text: Post text
    :return: Spans ordered by byte offset
    """
    encoded = text.encode("utf-8")
    spans = []

    for match in MENTION_PATTERN.finditer(encoded):
        spans.append(FacetSpan(
            kind="mention",
            value=match.group(1)[1:].decode("utf-8"),
            byte_start=match.start(1),
            byte_end=match.end(1)
        ))

    for match in LINK_PATTERN.finditer(encoded):
        spans.append(FacetSpan(
            kind="link",
            value=match.group(1).decode("utf-8"),
            byte_start=match.start(1),
            byte_end=match.end(1)
        ))

    return sorted(spans, key=lambda s: s.byte_start)


def resolve_facets(
    text: str,
    resolve_handle: Callable[[str], Optional[str]],
    logger: Optional[logging.Logger] = None
) -> List[Dict]:
    """
    Build `app.bsky.richtext.facet` records for the text.

    :param text: Post text
    :param resolve_handle: handle -> DID, returning None when unresolvable
    :param logger: Optional logger
    :return: Facet dicts ready for a post record
    """
    logger = logger or logging.getLogger(__name__)
    facets = []

    for span in detect_facets(text):
        index = {"byteStart": span.byte_start, "byteEnd": span.byte_end}
        if span.kind == "mention":
            did = resolve_handle(span.value)
            if not did:
                logger.debug(f"Skipping mention facet for unresolved handle {span.value}")
                continue
            feature = {"$type": MENTION_TYPE, "did": did}
        else:
            feature = {"$type": LINK_TYPE, "uri": span.value}
        facets.append({"index": index, "features": [feature]})

    return facets
