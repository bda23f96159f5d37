"""
Weather and hurricane headline feed (Google News RSS).

Two searches are fetched concurrently and merged:

  1. hurricane news  — "hurricane florida OR orange juice weather", last 7 days
  2. weather news    — "florida freeze OR citrus frost OR orange juice weather"

Merge rules
-----------
  - Each headline is tagged ``is_hurricane`` when its title contains any of
    ``HURRICANE_KEYWORDS``.
  - Duplicates (same lower-cased, stripped title) collapse to one; the
    hurricane-tagged copy wins.
  - Sort: hurricane headlines first, then newest first.
  - Keep the top ``limit`` (20).
  - When *every* feed failed, return a single "Weather data temporarily
    unavailable" headline instead of an empty list.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Optional

import feedparser
import httpx

from citrus_signal.ingestion.http import FetchError, get_response

logger = logging.getLogger(__name__)

SOURCE = "google_news"

HURRICANE_KEYWORDS: tuple[str, ...] = (
    "hurricane",
    "tropical storm",
    "cyclone",
    "tropical depression",
    "storm surge",
    "tropical system",
    "nhc",
    "national hurricane center",
)

FALLBACK_TITLE = "Weather data temporarily unavailable"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class NewsHeadline:
    """One headline from a news feed."""

    title:        str
    link:         str
    published_at: Optional[datetime]
    source:       str
    is_hurricane: bool = False


def is_hurricane_headline(title: str) -> bool:
    lower = title.lower()
    return any(kw in lower for kw in HURRICANE_KEYWORDS)


def split_source(title: str) -> tuple[str, str]:
    """Split Google News ``"Title - Source"`` into ``(title, source)``."""
    idx = title.rfind(" - ")
    if idx > 0:
        return title[:idx], title[idx + 3:]
    return title, "News"


def parse_feed(xml_text: str) -> list[NewsHeadline]:
    """Parse RSS XML into headlines (order preserved)."""
    feed = feedparser.parse(xml_text)
    headlines: list[NewsHeadline] = []
    for entry in feed.entries:
        raw_title = getattr(entry, "title", "") or ""
        if not raw_title.strip():
            continue
        published_at = None
        parsed = getattr(entry, "published_parsed", None)
        if parsed:
            published_at = datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        _, source = split_source(raw_title)
        headlines.append(
            NewsHeadline(
                title=raw_title,
                link=getattr(entry, "link", "") or "",
                published_at=published_at,
                source=source,
                is_hurricane=is_hurricane_headline(raw_title),
            )
        )
    return headlines


def merge_headlines(feeds: list[list[NewsHeadline]], limit: int = 20) -> list[NewsHeadline]:
    """De-duplicate, prioritise hurricane news, newest first, top ``limit``."""
    unique: dict[str, NewsHeadline] = {}
    for headlines in feeds:
        for h in headlines:
            key = h.title.lower().strip()
            existing = unique.get(key)
            if existing is None or (h.is_hurricane and not existing.is_hurricane):
                unique[key] = h

    ordered = sorted(
        unique.values(),
        key=lambda h: (not h.is_hurricane, -(h.published_at or _EPOCH).timestamp()),
    )
    return ordered[:limit]


def fallback_headlines() -> list[NewsHeadline]:
    return [
        NewsHeadline(
            title=FALLBACK_TITLE,
            link="",
            published_at=datetime.now(timezone.utc),
            source="System",
            is_hurricane=False,
        )
    ]


class NewsFeedClient:
    """Fetch and merge the hurricane and weather headline feeds."""

    HURRICANE_FEED_URL: ClassVar[str] = (
        "https://news.google.com/rss/search?q=hurricane+florida+OR+orange+juice"
        "+weather+when:7d&hl=en-US&gl=US&ceid=US:en"
    )
    WEATHER_FEED_URL: ClassVar[str] = (
        "https://news.google.com/rss/search?q=florida+freeze+OR+citrus+frost"
        "+OR+orange+juice+weather+when:7d&hl=en-US&gl=US&ceid=US:en"
    )

    def __init__(
        self,
        feed_urls: Optional[list[str]] = None,
        limit: int = 20,
        timeout: float = 15.0,
    ) -> None:
        self.feed_urls = feed_urls or [self.HURRICANE_FEED_URL, self.WEATHER_FEED_URL]
        self.limit = limit
        self.timeout = timeout

    async def _fetch_feed(self, client: httpx.AsyncClient, url: str) -> list[NewsHeadline]:
        resp = await get_response(client, SOURCE, url, timeout=self.timeout)
        return parse_feed(resp.text)

    async def fetch_headlines(self, client: httpx.AsyncClient) -> list[NewsHeadline]:
        """Fetch all feeds concurrently and merge them."""
        results = await asyncio.gather(
            *(self._fetch_feed(client, url) for url in self.feed_urls),
            return_exceptions=True,
        )

        feeds: list[list[NewsHeadline]] = []
        for result in results:
            if isinstance(result, FetchError):
                logger.warning("News feed failed: %s", result)
                continue
            if isinstance(result, BaseException):
                raise result
            feeds.append(result)

        if not feeds:
            return fallback_headlines()

        merged = merge_headlines(feeds, self.limit)
        logger.info(
            "News: %d headline(s), %d hurricane-related",
            len(merged), sum(1 for h in merged if h.is_hurricane),
        )
        return merged
