"""HTTP transport used by connectors.

Connectors only need `issue_request(url, headers, body) -> TransportResponse`.
The default implementation posts JSON with a `requests.Session` per host, on a worker thread
so that the event loop keeps running while the request is in flight.
"""

from __future__ import annotations

import asyncio
import json
import logging
from threading import Lock
import time
from typing import Any, Callable, Generic, Hashable, Mapping, NamedTuple, Protocol, TypeVar
from urllib.parse import urlsplit

import requests
from typing_extensions import runtime_checkable

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

CLIENT_EXPIRY_SECONDS = 1200


class TransportResponse(NamedTuple):
    status: int
    headers: Mapping[str, str]
    body: str

    def json(self) -> Any:
        return json.loads(self.body)


@runtime_checkable
class Transport(Protocol):
    """Protocol for sending one JSON request and receiving the raw response."""

    async def issue_request(self, url: str, headers: Mapping[str, str], body: Any) -> TransportResponse:
        """POST `body` as JSON to `url`.

        Returns
        -------
        TransportResponse
            Status code, response headers, and the undecoded body.
        """
        ...


def normalize_host(url: str) -> str:
    """Reduce a url to a lower-cased 'scheme://netloc' cache key."""
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid URL: {url}")
    return f"{parts.scheme}://{parts.netloc}".lower()


class ClientCache(Generic[K, V]):
    """Thread-safe cache where every entry expires a fixed time after insertion.

    `on_evict` is called with each value dropped on expiry or replaced by `insert`.
    """

    def __init__(self, expiry_seconds: float = CLIENT_EXPIRY_SECONDS, on_evict: Callable[[V], Any] | None = None):
        if expiry_seconds <= 0:
            raise ValueError("expiry_seconds must be > 0")
        self.expiry_seconds = expiry_seconds
        self.on_evict = on_evict
        self._entries: dict[K, tuple[float, V]] = {}
        self.lock = Lock()

    def get(self, key: K) -> V | None:
        with self.lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                self._evict(value)
                return None
            return value

    def insert(self, key: K, value: V) -> None:
        with self.lock:
            previous = self._entries.get(key)
            self._entries[key] = (time.monotonic() + self.expiry_seconds, value)
        if previous is not None and previous[1] is not value:
            self._evict(previous[1])

    def _evict(self, value: V) -> None:
        if self.on_evict is not None:
            self.on_evict(value)

    def __len__(self) -> int:
        return len(self._entries)


def _close_session(session: requests.Session) -> None:
    logger.debug("Closing expired session")
    session.close()


class RequestsTransport(Transport):
    """Transport backed by one cached `requests.Session` per host."""

    def __init__(self, timeout: float | None = 120, cache: ClientCache[str, requests.Session] | None = None):
        self.timeout = timeout
        self.cache = cache if cache is not None else ClientCache(on_evict=_close_session)

    def session_for(self, url: str) -> requests.Session:
        host = normalize_host(url)
        session = self.cache.get(host)
        if session is None:
            logger.debug(f"Creating new session for {host}")
            session = requests.Session()
            self.cache.insert(host, session)
        return session

    def _post(self, url: str, headers: Mapping[str, str], body: Any) -> TransportResponse:
        session = self.session_for(url)
        with session.post(url, headers=dict(headers), json=body, timeout=self.timeout) as response:
            return TransportResponse(
                status=response.status_code,
                headers=dict(response.headers),
                body=response.text,
            )

    async def issue_request(self, url: str, headers: Mapping[str, str], body: Any) -> TransportResponse:
        return await asyncio.to_thread(self._post, url, headers, body)
