"""
Image Enrichment - attach an illustrative photo to every parsed menu item.
=========================================================================

For each item a cascade of search terms is tried against the Wikipedia
full-text search; for every candidate page the REST summary is fetched and
the first usable thumbnail wins. Items are resolved concurrently and a
failing lookup only costs that item its image.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from menu_lens.conf.config import settings
from menu_lens.core.logging import log_event
from menu_lens.core.models import MenuItem


logger = logging.getLogger(__name__)

_BRACKETS_RE = re.compile(r"[()\[\]]")


def build_search_terms(name: str, qualifiers: Sequence[str] = ("food", "dish")) -> list[str]:
    """Search terms in priority order.

    raw name, name + each qualifier, name with brackets stripped.
    """
    terms = [name]
    terms.extend(f"{name} {qualifier}" for qualifier in qualifiers)
    terms.append(_BRACKETS_RE.sub("", name).strip())
    return terms


def usable_image_url(value: Any, *, max_length: int = 2000) -> str | None:
    """Return ``value`` if it is an absolute http(s) URL we can hand to a browser."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed.startswith(("http://", "https://")):
        return None
    if len(trimmed) > max_length:
        return None
    return trimmed


class ImageResolver:
    """Cascading, fault-tolerant image lookup backed by Wikipedia."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        search_url: str | None = None,
        summary_url: str | None = None,
        result_limit: int | None = None,
        qualifiers: Sequence[str] | None = None,
        timeout: float | None = None,
        max_concurrency: int | None = None,
        user_agent: str | None = None,
    ):
        self._client = client
        self.search_url = search_url or settings.WIKIPEDIA_API_URL
        self.summary_url = (summary_url or settings.WIKIPEDIA_SUMMARY_URL).rstrip("/")
        self.result_limit = result_limit or settings.SEARCH_RESULT_LIMIT
        self.qualifiers = tuple(qualifiers if qualifiers is not None else settings.search_qualifiers)
        self.timeout = timeout or settings.ENRICHMENT_TIMEOUT_SECONDS
        self.max_concurrency = (
            settings.ENRICHMENT_MAX_CONCURRENCY if max_concurrency is None else max_concurrency
        )
        self.user_agent = user_agent or settings.HTTP_USER_AGENT

    # ------------------------------------------------------------------
    # Single lookups
    # ------------------------------------------------------------------

    async def search(self, client: httpx.AsyncClient, term: str) -> list[str]:
        """Return candidate page titles for ``term`` in index order.

        Raises:
            httpx.HTTPError: network failure or non-success status
            ValueError: body is not JSON
        """
        params = {
            "action": "query",
            "list": "search",
            "srsearch": term,
            "format": "json",
            "srlimit": str(self.result_limit),
        }
        response = await client.get(self.search_url, params=params)
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict):
            raise ValueError("search response is not an object")
        hits = (data.get("query") or {}).get("search") or []
        titles = [hit.get("title") for hit in hits if isinstance(hit, dict)]
        return [t for t in titles if isinstance(t, str) and t][: self.result_limit]

    async def fetch_thumbnail(self, client: httpx.AsyncClient, title: str) -> str | None:
        """Return the summary thumbnail of page ``title``, if it has a usable one."""
        url = f"{self.summary_url}/{quote(title, safe='')}"
        response = await client.get(url)
        if not response.is_success:
            return None
        data = response.json()
        thumbnail = data.get("thumbnail") if isinstance(data, dict) else None
        if not isinstance(thumbnail, dict):
            return None
        return usable_image_url(thumbnail.get("source"))

    async def find_image(self, client: httpx.AsyncClient, name: str) -> str | None:
        """Walk the term cascade for ``name``; first usable thumbnail wins."""
        for term in build_search_terms(name, self.qualifiers):
            if not term:
                continue
            try:
                titles = await self.search(client, term)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("Search failed for %r: %s", term, e)
                continue

            if not titles:
                continue

            # A failed summary request skips only this candidate; the
            # remaining candidates of the same term are still tried.
            for title in titles:
                try:
                    url = await self.fetch_thumbnail(client, title)
                except (httpx.HTTPError, ValueError) as e:
                    logger.debug("Summary failed for %r: %s", title, e)
                    continue
                if url:
                    return url

        return None

    # ------------------------------------------------------------------
    # Per-item boundary and fan-out
    # ------------------------------------------------------------------

    async def enrich_item(self, client: httpx.AsyncClient, item: MenuItem) -> MenuItem:
        """Resolve one item; any failure leaves the item as it was."""
        try:
            url = await self.find_image(client, item.name)
        except Exception as e:
            log_event(
                logger,
                event="enrichment_item_error",
                level="warning",
                item_name=item.name,
                error=f"{type(e).__name__}: {e}",
            )
            return item

        if url:
            log_event(logger, event="enrichment_item_found", item_name=item.name)
            return item.with_image(url)

        log_event(logger, event="enrichment_item_missing", item_name=item.name)
        return item

    async def enrich(self, items: Sequence[MenuItem]) -> list[MenuItem]:
        """Resolve all items concurrently and return them in input order.

        Completes only after every lookup has settled. Items without an
        image are returned unchanged; none are dropped.
        """
        if not items:
            return []

        log_event(logger, event="enrichment_started", items_count=len(items))

        if self._client is not None:
            results = await self._gather(self._client, items)
        else:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            ) as client:
                results = await self._gather(client, items)

        enriched: list[MenuItem] = []
        for item, result in zip(items, results):
            if isinstance(result, MenuItem):
                enriched.append(result)
            else:
                logger.warning("Lookup for %r escaped its boundary: %r", item.name, result)
                enriched.append(item)

        log_event(
            logger,
            event="enrichment_done",
            items_count=len(enriched),
            images_found=sum(1 for item in enriched if item.image_url),
        )
        return enriched

    async def _gather(
        self, client: httpx.AsyncClient, items: Sequence[MenuItem]
    ) -> list[MenuItem | BaseException]:
        if self.max_concurrency > 0:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(item: MenuItem) -> MenuItem:
                async with semaphore:
                    return await self.enrich_item(client, item)

            tasks = [bounded(item) for item in items]
        else:
            tasks = [self.enrich_item(client, item) for item in items]

        return await asyncio.gather(*tasks, return_exceptions=True)


async def enrich_items(items: Sequence[MenuItem], **options: Any) -> list[MenuItem]:
    """Convenience function: resolve images for ``items`` with default settings."""
    return await ImageResolver(**options).enrich(items)
