# src/search/link_checker.py — v1
"""Dead-link filter for search hits, via concurrent HEAD requests.

A URL counts as live when a HEAD request (redirects followed) answers
below 400 within the timeout. When no URL answers at all, the caller
keeps the unfiltered list: a network outage should not erase results.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_S = 4.0
USER_AGENT = "Mozilla/5.0 (compatible; researchcache/1.0)"


class LinkChecker:
    """HEAD-checks URLs with a shared httpx.AsyncClient.

    Args:
        client: Client to reuse (tests pass one built on httpx.MockTransport).
            When None, one is created and closed by close().
        timeout_s: Per-request timeout.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self._timeout_s = timeout_s

    async def is_live(self, url: str) -> bool:
        try:
            response = await self._client.head(url, timeout=self._timeout_s, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug("HEAD %s failed: %s: %s", url, type(e).__name__, e)
            return False
        return response.status_code < 400

    async def filter_live(self, items: list[T], url_of: Callable[[T], str]) -> list[T]:
        """Items whose URL is live, in input order; all items if none are."""
        if not items:
            return items
        checks = await asyncio.gather(*(self.is_live(url_of(item)) for item in items))
        live = [item for item, ok in zip(items, checks) if ok]
        if not live:
            logger.warning("No listing URL answered a HEAD check; keeping all %d", len(items))
            return items
        if len(live) < len(items):
            logger.info("Dropped %d dead link(s)", len(items) - len(live))
        return live

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
