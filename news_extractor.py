"""Content extraction from feed items and live article pages."""
import logging
import re
import time
from typing import Callable, Optional

import requests
from bs4 import BeautifulSoup

import config
from models import FetchResult, RawFeedItem

logger = logging.getLogger(__name__)

# Feed fields in priority order: full encoded content first, description last
CONTENT_FIELDS = ("content:encoded", "content", "contentSnippet", "description")

HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

# Main content containers, most specific first
CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content",
    "main",
]

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_content(item: RawFeedItem) -> str:
    """Return the richest non-empty content field of a raw feed item."""
    for field in CONTENT_FIELDS:
        value = item.get(field)
        if isinstance(value, str) and value:
            return value
    return ""


def strip_html(text: Optional[str]) -> str:
    """Remove tags, decode the common entities and collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub("", text)
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: str) -> str:
    # Newlines are folded too; summaries are produced from a single line of text
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def read_body(response: requests.Response, deadline: float, clock: Callable[[], float] = time.monotonic) -> bytes:
    """Read a streamed response body, giving up once ``clock()`` passes ``deadline``.

    The requests timeout bounds each socket read, not the whole transfer.
    """
    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=8192):
            if clock() > deadline:
                raise requests.Timeout("Response not received before the fetch deadline")
            chunks.append(chunk)
    finally:
        response.close()
    return b"".join(chunks)


class WebpageFetcher:
    """Fetches an article page and extracts its main text.

    Used as a fallback when the feed itself only carries a teaser. Every call
    returns a FetchResult; network and parsing errors are retried with a
    linear backoff and reported in ``FetchResult.error``.
    """

    def __init__(
        self,
        retries: int = config.FETCH_RETRIES,
        timeout: float = config.FETCH_TIMEOUT,
        user_agent: str = config.USER_AGENT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.retries = max(1, retries)
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def fetch_content(self, url: str) -> FetchResult:
        last_error = "unknown error"
        for attempt in range(1, self.retries + 1):
            deadline = self.clock() + self.timeout
            try:
                response = self.session.get(url, timeout=self.timeout, allow_redirects=True, stream=True)
                response.raise_for_status()
                content = self.extract_main_text(read_body(response, deadline, self.clock))
                if len(content) < config.MIN_CONTENT_LENGTH:
                    raise ValueError("Extracted content too short")
                return FetchResult(content=content, success=True)
            except Exception as e:
                last_error = str(e)
                logger.debug(f"Attempt {attempt}/{self.retries} for {url} failed: {last_error}")

            if attempt < self.retries:
                self.sleep(1.0 * attempt)

        return FetchResult(
            success=False,
            error=f"Failed after {self.retries} attempts: {last_error}",
        )

    @staticmethod
    def extract_main_text(html) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        content = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element:
                content = element.get_text(separator=" ")
                break

        # Fallback: all paragraph text on the page
        if len(content.strip()) < 100:
            paragraphs = [p.get_text(separator=" ") for p in soup.find_all("p")]
            content = "\n".join(paragraphs)

        return clean_text(content)
