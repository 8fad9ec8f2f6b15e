"""
Bluesky XRPC client.

Covers what the mention bot needs: session login, profile and identity
resolution (handle -> DID -> PDS), post listing, mention notifications and
posting replies with rich-text facets.
"""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from vibecheck.bluesky.facets import resolve_facets
from vibecheck.utils.rate_limiter import RateLimiter

DEFAULT_SERVICE = "https://bsky.social"
PLC_DIRECTORY = "https://plc.directory"
POST_COLLECTION = "app.bsky.feed.post"
PDS_SERVICE_ID = "#atproto_pds"


class BlueskyError(RuntimeError):
    """Request to Bluesky (or the PLC directory) failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Mention:
    """A post that mentions the bot."""

    uri: str
    cid: str
    author_did: str
    author_handle: str
    text: str
    indexed_at: str
    reply_root: Optional[Dict[str, str]] = None  # {"uri", "cid"} when the mention is itself a reply

    @classmethod
    def from_notification(cls, notification: Dict[str, Any]) -> "Mention":
        author = notification.get("author") or {}
        record = notification.get("record") or {}
        reply = record.get("reply") or {}
        root = reply.get("root")
        return cls(
            uri=notification["uri"],
            cid=notification["cid"],
            author_did=author.get("did", ""),
            author_handle=author.get("handle", ""),
            text=record.get("text", "") if isinstance(record.get("text"), str) else "",
            indexed_at=notification.get("indexedAt", ""),
            reply_root={"uri": root["uri"], "cid": root["cid"]} if root else None
        )


def now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BlueskyClient:
    """
    Minimal XRPC client over a retrying `requests.Session`.

    Example:
        >>> client = BlueskyClient()
        >>> client.login("vibecheck.bsky.social", "app-password")
        >>> texts = client.list_post_texts("alice.bsky.social", limit=100)
    """

    def __init__(
        self,
        service: str = DEFAULT_SERVICE,
        rate_limiter: Optional[RateLimiter] = None,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None
    ):
        """
        :param service: PDS / entryway URL used for authenticated calls
        :param rate_limiter: Optional RateLimiter shared by all requests
        :param logger: Optional logger instance
        :param session: Optional pre-built session (tests)
        """
        self.service = service.rstrip("/")
        self.rate_limiter = rate_limiter
        self.logger = logger or logging.getLogger(__name__)

        self.access_jwt: Optional[str] = None
        self.refresh_jwt: Optional[str] = None
        self.did: Optional[str] = None
        self.handle: Optional[str] = None

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=3,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
                respect_retry_after_header=True,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=10, pool_maxsize=20)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session
        self.timeout = (10, 30)

    def _xrpc(self, method: str, base: Optional[str] = None) -> str:
        return f"{(base or self.service).rstrip('/')}/xrpc/{method}"

    def _auth_headers(self, token: Optional[str] = None) -> Dict[str, str]:
        token = token or self.access_jwt
        if not token:
            raise BlueskyError("Not logged in")
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        url: str,
        auth: bool = False,
        retry_expired: bool = True,
        **kwargs
    ) -> Dict[str, Any]:
        if self.rate_limiter:
            self.rate_limiter.acquire()

        headers = dict(kwargs.pop("headers", {}) or {})
        if auth:
            headers.update(self._auth_headers())

        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BlueskyError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            error = self._error_name(response)
            if auth and retry_expired and error == "ExpiredToken" and self.refresh_jwt:
                self.logger.info("Access token expired, refreshing session")
                self.refresh_session()
                return self._request(method, url, auth=auth, retry_expired=False, **kwargs)
            raise BlueskyError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BlueskyError(f"{method} {url} returned invalid JSON") from e

    @staticmethod
    def _error_name(response: requests.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body.get("error") if isinstance(body, dict) else None

    def _store_session(self, data: Dict[str, Any]) -> None:
        self.access_jwt = data["accessJwt"]
        self.refresh_jwt = data.get("refreshJwt")
        self.did = data.get("did")
        self.handle = data.get("handle")

    def login(self, identifier: str, password: str) -> None:
        """Create a session (com.atproto.server.createSession)."""
        data = self._request(
            "POST",
            self._xrpc("com.atproto.server.createSession"),
            json={"identifier": identifier, "password": password}
        )
        self._store_session(data)
        self.logger.info(f"Logged in as {self.handle or identifier}")

    def refresh_session(self) -> None:
        """Swap the refresh token for a new access token."""
        if not self.refresh_jwt:
            raise BlueskyError("No refresh token available")
        data = self._request(
            "POST",
            self._xrpc("com.atproto.server.refreshSession"),
            headers=self._auth_headers(self.refresh_jwt)
        )
        self._store_session(data)

    def get_profile(self, actor: str) -> Dict[str, Any]:
        """Fetch a profile by handle or DID."""
        return self._request(
            "GET",
            self._xrpc("app.bsky.actor.getProfile"),
            auth=True,
            params={"actor": actor}
        )

    def resolve_handle(self, handle: str) -> Optional[str]:
        """
        Resolve a handle to a DID.

        :return: DID, or None when the handle cannot be resolved
        """
        try:
            data = self._request(
                "GET",
                self._xrpc("com.atproto.identity.resolveHandle"),
                params={"handle": handle.lstrip("@")}
            )
        except BlueskyError as e:
            self.logger.debug(f"Could not resolve handle {handle}: {e}")
            return None
        return data.get("did")

    def resolve_pds(self, did: str) -> str:
        """
        Look up the PDS endpoint for a DID.

        did:plc documents come from plc.directory; did:web from the domain's
        /.well-known/did.json.
        """
        if did.startswith("did:web:"):
            url = f"https://{did[len('did:web:'):]}/.well-known/did.json"
        else:
            url = f"{PLC_DIRECTORY}/{did}"

        document = self._request("GET", url)
        for service in document.get("service") or []:
            if service.get("id") == PDS_SERVICE_ID and service.get("serviceEndpoint"):
                return service["serviceEndpoint"].rstrip("/")
        raise BlueskyError(f"No PDS endpoint in DID document for {did}")

    def list_post_texts(self, handle: str, limit: int = 100) -> List[str]:
        """
        Fetch the text of a user's most recent posts straight from their PDS.

        :param handle: User handle
        :param limit: Max posts (1-100)
        :return: Post texts, newest first; "" for records without text
        """
        profile = self.get_profile(handle)
        did = profile["did"]
        pds = self.resolve_pds(did)

        data = self._request(
            "GET",
            self._xrpc("com.atproto.repo.listRecords", base=pds),
            params={"repo": did, "collection": POST_COLLECTION, "limit": max(1, min(limit, 100))}
        )

        texts = []
        for record in data.get("records") or []:
            value = record.get("value")
            text = value.get("text") if isinstance(value, dict) else None
            texts.append(text if isinstance(text, str) else "")

        self.logger.debug(f"Fetched {len(texts)} posts for {handle} from {pds}")
        return texts

    def list_mentions(self, limit: int = 50) -> List[Mention]:
        """Unread notifications whose reason is 'mention'."""
        data = self._request(
            "GET",
            self._xrpc("app.bsky.notification.listNotifications"),
            auth=True,
            params={"limit": limit}
        )
        return [
            Mention.from_notification(n)
            for n in data.get("notifications") or []
            if n.get("reason") == "mention" and not n.get("isRead")
        ]

    def update_seen(self, seen_at: Optional[str] = None) -> None:
        """Mark notifications up to `seen_at` (default: now) as read."""
        self._request(
            "POST",
            self._xrpc("app.bsky.notification.updateSeen"),
            auth=True,
            json={"seenAt": seen_at or now_iso()}
        )

    def reply(self, mention: Mention, text: str, with_facets: bool = True) -> Dict[str, Any]:
        """
        Post a reply to a mention.

        :param mention: Post being replied to
        :param text: Reply text
        :param with_facets: Attach mention/link facets
        :return: createRecord response ({"uri", "cid"})
        """
        if not self.did:
            raise BlueskyError("Not logged in")

        parent = {"uri": mention.uri, "cid": mention.cid}
        record: Dict[str, Any] = {
            "$type": POST_COLLECTION,
            "text": text,
            "createdAt": now_iso(),
            "reply": {"root": mention.reply_root or parent, "parent": parent},
        }
        if with_facets:
            facets = resolve_facets(text, self.resolve_handle, logger=self.logger)
            if facets:
                record["facets"] = facets

        return self._request(
            "POST",
            self._xrpc("com.atproto.repo.createRecord"),
            auth=True,
            json={"repo": self.did, "collection": POST_COLLECTION, "record": record}
        )

    def close(self) -> None:
        self.session.close()
