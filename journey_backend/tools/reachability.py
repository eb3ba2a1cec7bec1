"""Live reachability checks for cited source URLs.

A probe answers True (reachable), False (definitely not usable) or None
(unknown: timeout or network failure). Unknown is never treated as a
failure by the trust scorer.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol
from urllib.parse import urlparse

import requests

from journey_backend.config import (
    URL_CACHE_EXPIRY_HOURS,
    URL_PROBE_CONCURRENCY,
    URL_PROBE_TIMEOUT,
    URL_PROBE_USER_AGENT,
)

logger = logging.getLogger(__name__)

CACHE_MISS = object()


class ReachabilityCacheBackend(Protocol):
    def get(self, url: str): ...
    def set(self, url: str, reachable: bool | None) -> None: ...
    def expire(self) -> int: ...


class ReachabilityCache:
    """URL -> probe result with a fixed expiry. Safe to prune at any time."""

    def __init__(
        self,
        expiry_seconds: float = URL_CACHE_EXPIRY_HOURS * 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.expiry_seconds = expiry_seconds
        self._clock = clock
        self._entries: dict[str, tuple[bool | None, float]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, url: str):
        """Cached result for ``url``, or CACHE_MISS."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None and self._clock() - entry[1] < self.expiry_seconds:
                self.hits += 1
                return entry[0]
            if entry is not None:
                del self._entries[url]
            self.misses += 1
            return CACHE_MISS

    def set(self, url: str, reachable: bool | None) -> None:
        with self._lock:
            self._entries[url] = (reachable, self._clock())

    def expire(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [u for u, (_, checked) in self._entries.items() if now - checked >= self.expiry_seconds]
            for url in stale:
                del self._entries[url]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


def is_probeable_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def probe_url(url: str, timeout: float = URL_PROBE_TIMEOUT) -> bool | None:
    """HEAD the URL. Returns None when the answer is unknown."""
    if not is_probeable_url(url):
        return False
    try:
        response = requests.head(
            url,
            timeout=timeout,
            allow_redirects=True,
            headers={"User-Agent": URL_PROBE_USER_AGENT},
        )
        return response.status_code < 400
    except (requests.Timeout, requests.ConnectionError) as e:
        logger.warning("Reachability probe for %s failed (treated as unknown): %s", url, e)
        return None
    except requests.RequestException as e:
        logger.warning("Reachability probe for %s errored (treated as unknown): %s", url, e)
        return None


class ReachabilityChecker:
    """Cached URL probing; disabled checkers answer None without touching the network."""

    def __init__(
        self,
        cache: ReachabilityCacheBackend | None = None,
        probe: Callable[[str], bool | None] = probe_url,
        enabled: bool = True,
        concurrency: int = URL_PROBE_CONCURRENCY,
    ):
        self.cache = cache if cache is not None else ReachabilityCache()
        self.probe = probe
        self.enabled = enabled
        self.concurrency = concurrency

    def check(self, url: str) -> bool | None:
        if not self.enabled:
            return None

        cached = self.cache.get(url)
        if cached is not CACHE_MISS:
            return cached

        try:
            result = self.probe(url)
        except Exception as e:
            logger.warning("Unexpected reachability probe error for %s: %s", url, e)
            result = None

        self.cache.set(url, result)
        return result

    def check_many(self, urls: list[str]) -> dict[str, bool | None]:
        """Probe several URLs in parallel, at most ``concurrency`` at a time."""
        unique = list(dict.fromkeys(urls))
        if not unique:
            return {}
        with ThreadPoolExecutor(max_workers=max(1, self.concurrency)) as pool:
            results = list(pool.map(self.check, unique))
        return dict(zip(unique, results))

    def prune(self) -> int:
        return self.cache.expire()
