"""RSS/Atom feed retrieval."""
import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import feedparser
import requests

import config
from models import FeedSource, RawFeedItem, format_timestamp
from news_extractor import read_body, strip_html

logger = logging.getLogger(__name__)


class FeedFetchError(Exception):
    """A feed could not be downloaded or parsed."""


def _parsed_time_to_iso(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        return format_timestamp(datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc))
    except (TypeError, ValueError, OverflowError):
        return None


def entry_to_raw_item(entry: Any) -> RawFeedItem:
    """Map a feedparser entry onto the field names the extractor understands."""
    encoded = ""
    plain = ""
    for block in entry.get("content") or []:
        value = block.get("value") or ""
        if not value:
            continue
        if "html" in (block.get("type") or ""):
            encoded = encoded or value
        else:
            plain = plain or value

    description = entry.get("summary") or entry.get("description") or ""
    iso_date = _parsed_time_to_iso(entry.get("published_parsed")) or _parsed_time_to_iso(
        entry.get("updated_parsed")
    )
    return {
        "title": entry.get("title"),
        "link": entry.get("link"),
        "pubDate": entry.get("published") or entry.get("updated"),
        "isoDate": iso_date,
        "content:encoded": encoded,
        "content": plain,
        "contentSnippet": strip_html(description),
        "description": description,
    }


class FeedReader:
    """Downloads a feed over HTTP and hands back its entries as raw items."""

    def __init__(
        self,
        timeout: float = config.FETCH_TIMEOUT,
        user_agent: str = config.USER_AGENT,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.clock = clock
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def fetch(self, source: FeedSource) -> List[RawFeedItem]:
        logger.info(f"Fetching feed: {source.name} ({source.url})")
        deadline = self.clock() + self.timeout
        try:
            response = self.session.get(source.url, timeout=self.timeout, stream=True)
            response.raise_for_status()
            body = read_body(response, deadline, self.clock)
        except requests.exceptions.RequestException as e:
            raise FeedFetchError(f"Network error fetching {source.url}: {e}") from e

        feed = feedparser.parse(body)
        if feed.bozo and not feed.entries:
            raise FeedFetchError(f"Unparseable feed {source.url}: {feed.get('bozo_exception')}")
        if feed.bozo:
            logger.warning(f"Feed {source.name} parsed with errors: {feed.get('bozo_exception')}")

        return [entry_to_raw_item(entry) for entry in feed.entries]
