"""Data models for the news feed aggregator."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser
from pydantic import BaseModel, ConfigDict, Field

# Sort key for timestamps that cannot be parsed; such items sink to the end
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# A raw feed entry normalized to the keys the content extractor reads:
# title, link, pubDate, isoDate, content:encoded, content, contentSnippet, description
RawFeedItem = Dict[str, Any]

# Two unrelated defaults; a value that parses differently under each is missing a date part
_DEFAULTS = (datetime(1900, 1, 1), datetime(1904, 2, 2))


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds, e.g. 2024-05-01T09:30:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 (or RFC 822) timestamp; naive values are UTC.

    Garbage and partial dates such as "May" or "10" map to EPOCH rather than
    being completed from today's date.
    """
    if not value:
        return EPOCH
    try:
        parsed, alternative = (parser.parse(value, default=default) for default in _DEFAULTS)
    except (ValueError, OverflowError, TypeError):
        return EPOCH
    if parsed.date() != alternative.date():
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FeedSource(BaseModel):
    """A configured RSS/Atom endpoint."""
    model_config = ConfigDict(frozen=True)

    name: str
    url: str


class NewsItem(BaseModel):
    """A summarized article as persisted in the news document."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    url: str
    summary: str
    source: str
    published_at: str = Field(default_factory=utc_now, alias="publishedAt")
    content_hash: Optional[str] = Field(default=None, alias="contentHash")

    @property
    def published_datetime(self) -> datetime:
        return parse_timestamp(self.published_at)


class NewsDocument(BaseModel):
    """The rolling JSON document consumed by the list UI."""
    model_config = ConfigDict(populate_by_name=True)

    generated_at: str = Field(default_factory=utc_now, alias="generatedAt")
    items: List[NewsItem] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class FetchResult(BaseModel):
    """Outcome of a live webpage fetch."""
    content: str = ""
    success: bool = False
    error: Optional[str] = None


class TokenUsage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_tokens: int = Field(default=0, alias="inputTokens")
    output_tokens: int = Field(default=0, alias="outputTokens")
    total_tokens: int = Field(default=0, alias="totalTokens")

    def add(self, other: "TokenUsage"):
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens


class SummaryResult(BaseModel):
    """Text returned by a summarizer along with its token usage."""
    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


class RunStats(BaseModel):
    """Counters reported at the end of a pipeline run."""
    success_count: int = 0
    error_count: int = 0
    feed_errors: int = 0
    skipped_count: int = 0
    fetched_from_web: int = 0
    summaries_generated: int = 0
    summaries_reused: int = 0
    before_dedup: int = 0
    after_dedup: int = 0
    before_trim: int = 0
    after_trim: int = 0
    usage: TokenUsage = Field(default_factory=TokenUsage)
    estimated_cost: float = 0.0
    errors: List[str] = Field(default_factory=list)
    started_at: str = Field(default_factory=utc_now)
    finished_at: Optional[str] = None
