from datetime import datetime, timedelta, timezone

import pytest

from ai_processor import SummarizationError, Summarizer
from config import Settings
from feed_store import FeedStore
from models import FeedSource, FetchResult, NewsItem, SummaryResult, TokenUsage, format_timestamp

ARTICLE_TEXT = (
    "<p>The city council approved a new budget on Monday, allocating funds "
    "for public transport, parks and a new library in the northern district.</p>"
)


class FakeSummarizer(Summarizer):
    name = "fake"

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = fail_on

    def summarize(self, text):
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise SummarizationError("model unavailable")
        return SummaryResult(
            text=f"summary {len(self.calls)}",
            usage=TokenUsage(input_tokens=100, output_tokens=20, total_tokens=120),
        )


class FakeFeedReader:
    """Returns canned items per feed name; an Exception value is raised instead."""

    def __init__(self, feeds):
        self.feeds = feeds
        self.fetched = []

    def fetch(self, source):
        self.fetched.append(source.name)
        result = self.feeds[source.name]
        if isinstance(result, Exception):
            raise result
        return result


class FakeWebpageFetcher:
    def __init__(self, result=None):
        self.result = result or FetchResult(success=False, error="Failed after 3 attempts: HTTP 404")
        self.urls = []

    def fetch_content(self, url):
        self.urls.append(url)
        return self.result


def raw_item(link, title="Council approves budget", content=ARTICLE_TEXT, iso_date="2024-05-01T09:00:00.000Z"):
    return {
        "title": title,
        "link": link,
        "isoDate": iso_date,
        "pubDate": None,
        "content:encoded": content,
        "content": "",
        "contentSnippet": "",
        "description": "",
    }


def news_item(index, published, **overrides):
    values = dict(
        id=f"{index:012x}",
        title=f"Article {index}",
        url=f"https://example.com/{index}",
        summary=f"Summary {index}",
        source="Example",
        published_at=published,
        content_hash=f"{index + 1_000_000:012x}",
    )
    values.update(overrides)
    return NewsItem(**values)


def timestamps(count, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
    """Distinct ascending timestamps, one minute apart."""
    return [format_timestamp(start + timedelta(minutes=i)) for i in range(count)]


@pytest.fixture
def make_settings(tmp_path):
    def factory(feed_names=("Example",), **overrides):
        values = dict(
            provider="extractive",
            feeds=[FeedSource(name=name, url=f"https://{name.lower()}.example/feed") for name in feed_names],
            data_path=str(tmp_path / "data" / "news.json"),
            mirror_path=str(tmp_path / "public" / "data" / "news.json"),
            items_per_feed=10,
            request_delay=0,
            retention_limit=1000,
        )
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def store(settings):
    return FeedStore(settings.data_path, settings.mirror_path)
