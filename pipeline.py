"""Incremental aggregation: feeds in, summarized and bounded news document out."""
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import config
from ai_processor import Summarizer, estimate_cost
from config import Settings
from feed_reader import FeedReader
from feed_store import FeedStore
from hashing import article_id, content_hash
from models import (
    EPOCH,
    FeedSource,
    NewsDocument,
    NewsItem,
    RawFeedItem,
    RunStats,
    format_timestamp,
    parse_timestamp,
    utc_now,
)
from news_extractor import WebpageFetcher, extract_content, strip_html

logger = logging.getLogger(__name__)


class SkipItem(Exception):
    """An item carries no usable content and is skipped without counting as an error."""


def merge_items(prior: Iterable[NewsItem], new: Iterable[NewsItem]) -> List[NewsItem]:
    """Prior items first, fresh items appended."""
    return [*prior, *new]


def deduplicate_items(items: List[NewsItem]) -> List[NewsItem]:
    """Keep one item per id; the last occurrence wins."""
    unique: Dict[str, NewsItem] = {}
    for item in items:
        unique[item.id] = item
    return list(unique.values())


def sort_items_by_date(items: List[NewsItem]) -> List[NewsItem]:
    """Most recent first; ties keep their input order."""
    return sorted(items, key=lambda item: item.published_datetime, reverse=True)


def trim_items(items: List[NewsItem], limit: int) -> List[NewsItem]:
    return items[:limit]


def resolve_published_at(raw_item: RawFeedItem) -> str:
    """Feed isoDate, else a normalized pubDate, else the current time."""
    if raw_item.get("isoDate"):
        return raw_item["isoDate"]
    published = parse_timestamp(raw_item.get("pubDate"))
    if published == EPOCH:
        return utc_now()
    return format_timestamp(published)


class SummaryCache:
    """Summaries keyed by content fingerprint, seeded from the prior document."""

    def __init__(self, items: Iterable[NewsItem] = ()):
        self._summaries: Dict[str, str] = {}
        for item in items:
            if item.content_hash and item.content_hash not in self._summaries:
                self._summaries[item.content_hash] = item.summary

    def get(self, fingerprint: str) -> Optional[str]:
        return self._summaries.get(fingerprint)

    def put(self, fingerprint: str, summary: str):
        self._summaries.setdefault(fingerprint, summary)

    def __len__(self):
        return len(self._summaries)


class AggregationPipeline:
    """Runs one full read-merge-write cycle over the configured feeds."""

    def __init__(
        self,
        settings: Settings,
        summarizer: Summarizer,
        store: Optional[FeedStore] = None,
        feed_reader: Optional[FeedReader] = None,
        webpage_fetcher: Optional[WebpageFetcher] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.summarizer = summarizer
        self.store = store or FeedStore(settings.data_path, settings.mirror_path)
        self.feed_reader = feed_reader or FeedReader(settings.fetch_timeout, settings.user_agent)
        self.webpage_fetcher = webpage_fetcher or WebpageFetcher(
            retries=settings.fetch_retries,
            timeout=settings.fetch_timeout,
            user_agent=settings.user_agent,
            sleep=sleep,
        )
        self.sleep = sleep
        self._summarizer_called = False

    def run(self, save: bool = True) -> Tuple[NewsDocument, RunStats]:
        stats = RunStats()
        logger.info(f"=== Starting news pipeline ({len(self.settings.feeds)} feeds, provider: {self.summarizer.name}) ===")

        self._summarizer_called = False
        prior = self.store.load()
        cache = SummaryCache(prior.items)
        new_items: List[NewsItem] = []

        for source in self.settings.feeds:
            new_items.extend(self.process_feed(source, cache, stats))

        document = self.build_document(prior.items, new_items, stats)
        stats.estimated_cost = estimate_cost(
            stats.usage, self.settings.input_token_price, self.settings.output_token_price
        )
        stats.finished_at = utc_now()

        if save:
            self.store.save(document)

        self._log_summary(stats)
        return document, stats

    def process_feed(self, source: FeedSource, cache: SummaryCache, stats: RunStats) -> List[NewsItem]:
        logger.info(f"Processing feed: {source.name}")
        try:
            raw_items = self.feed_reader.fetch(source)
        except Exception as e:
            stats.error_count += 1
            stats.feed_errors += 1
            stats.errors.append(f"Feed '{source.name}': {e}")
            logger.error(f"Feed fetch error: {source.name}: {e}")
            return []

        items: List[NewsItem] = []
        for raw_item in raw_items[: self.settings.items_per_feed]:
            title = raw_item.get("title") or "Untitled"
            try:
                item = self.process_item(raw_item, source, cache, stats)
            except SkipItem as e:
                stats.skipped_count += 1
                logger.info(f"  Skipped: {title} ({e})")
                continue
            except Exception as e:
                stats.error_count += 1
                stats.errors.append(f"Item '{title}' in '{source.name}': {e}")
                logger.error(f"  ✗ Error: {title}: {e}")
                continue
            items.append(item)
            stats.success_count += 1
            logger.info(f"  ✓ {title}")
        return items

    def process_item(self, raw_item: RawFeedItem, source: FeedSource, cache: SummaryCache, stats: RunStats) -> NewsItem:
        url = raw_item.get("link") or ""
        if not url:
            # The article id derives from the link, so there is nothing to key on
            raise SkipItem("missing link")
        text = strip_html(extract_content(raw_item))

        if len(text) < config.MIN_CONTENT_LENGTH:
            result = self.webpage_fetcher.fetch_content(url)
            if not result.success:
                raise SkipItem(f"content too short, webpage fetch failed: {result.error}")
            text = result.content
            stats.fetched_from_web += 1

        text = text[: config.MAX_CONTENT_LENGTH]
        fingerprint = content_hash(text)

        summary = cache.get(fingerprint)
        if summary is not None:
            stats.summaries_reused += 1
            logger.debug(f"  Reusing summary for content {fingerprint}")
        else:
            summary = self._summarize(text, stats)
            cache.put(fingerprint, summary)

        return NewsItem(
            id=article_id(url),
            title=raw_item.get("title") or "Untitled",
            url=url,
            summary=summary,
            source=source.name,
            published_at=resolve_published_at(raw_item),
            content_hash=fingerprint,
        )

    def _summarize(self, text: str, stats: RunStats) -> str:
        # Pace calls for providers with strict rate limits
        if self._summarizer_called and self.settings.request_delay > 0:
            self.sleep(self.settings.request_delay)
        self._summarizer_called = True

        result = self.summarizer.summarize(text)
        stats.summaries_generated += 1
        stats.usage.add(result.usage)
        return result.text

    def build_document(self, prior: List[NewsItem], new: List[NewsItem], stats: RunStats) -> NewsDocument:
        merged = merge_items(prior, new)
        stats.before_dedup = len(merged)
        unique = deduplicate_items(merged)
        stats.after_dedup = len(unique)

        ordered = sort_items_by_date(unique)
        stats.before_trim = len(ordered)
        kept = trim_items(ordered, self.settings.retention_limit)
        stats.after_trim = len(kept)

        return NewsDocument(generated_at=utc_now(), items=kept)

    def _log_summary(self, stats: RunStats):
        logger.info("=== Pipeline finished ===")
        logger.info(f"Succeeded: {stats.success_count}")
        logger.info(f"Errors: {stats.error_count} (feeds: {stats.feed_errors})")
        logger.info(f"Skipped: {stats.skipped_count}")
        logger.info(f"Fetched from web: {stats.fetched_from_web}")
        logger.info(f"Summaries generated: {stats.summaries_generated}, reused: {stats.summaries_reused}")
        logger.info(f"Before dedup: {stats.before_dedup}, after dedup: {stats.after_dedup}")
        logger.info(f"Before trim: {stats.before_trim}, after trim: {stats.after_trim}")
        logger.info(
            f"Tokens: input {stats.usage.input_tokens}, output {stats.usage.output_tokens}, "
            f"total {stats.usage.total_tokens} (estimated cost ${stats.estimated_cost:.6f})"
        )
