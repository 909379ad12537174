import feedparser
import pytest
import requests

from feed_reader import FeedFetchError, FeedReader, entry_to_raw_item
from models import FeedSource

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Example News</title>
    <link>https://example.com</link>
    <description>Example feed</description>
    <item>
      <title>First story</title>
      <link>https://example.com/first</link>
      <pubDate>Wed, 01 May 2024 09:30:00 GMT</pubDate>
      <description>&lt;p&gt;Teaser text&lt;/p&gt;</description>
      <content:encoded><![CDATA[<p>Full body of the first story</p>]]></content:encoded>
    </item>
    <item>
      <title>Second story</title>
      <link>https://example.com/second</link>
      <description>Plain teaser</description>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <id>urn:example</id>
  <updated>2024-05-02T10:00:00Z</updated>
  <entry>
    <title>Atom story</title>
    <link href="https://example.com/atom-story"/>
    <id>urn:example:1</id>
    <updated>2024-05-02T10:00:00Z</updated>
    <content type="text">Plain body of the atom story</content>
  </entry>
</feed>
"""


class FakeResponse:
    def __init__(self, content, status_code=200):
        self.content = content
        self.status_code = status_code
        self.closed = False

    def iter_content(self, chunk_size=1):
        return iter([self.content[:len(self.content) // 2], self.content[len(self.content) // 2:]])

    def close(self):
        self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.headers = {}
        self.calls = []

    def get(self, url, timeout=None, stream=False):
        self.calls.append((url, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


SOURCE = FeedSource(name="Example", url="https://example.com/feed")


def test_rss_entry_mapping():
    first, second = [entry_to_raw_item(e) for e in feedparser.parse(RSS).entries]

    assert first["title"] == "First story"
    assert first["link"] == "https://example.com/first"
    assert first["isoDate"] == "2024-05-01T09:30:00.000Z"
    assert first["pubDate"] == "Wed, 01 May 2024 09:30:00 GMT"
    assert first["content:encoded"] == "<p>Full body of the first story</p>"
    assert first["contentSnippet"] == "Teaser text"

    assert second["isoDate"] is None
    assert second["content:encoded"] == ""
    assert second["content"] == ""
    assert second["description"] == "Plain teaser"


def test_atom_text_content_maps_to_plain_content():
    (entry,) = [entry_to_raw_item(e) for e in feedparser.parse(ATOM).entries]

    assert entry["link"] == "https://example.com/atom-story"
    assert entry["content"] == "Plain body of the atom story"
    assert entry["content:encoded"] == ""
    assert entry["isoDate"] == "2024-05-02T10:00:00.000Z"


def test_fetch_returns_raw_items():
    session = FakeSession(FakeResponse(RSS))
    reader = FeedReader(timeout=5, session=session)

    items = reader.fetch(SOURCE)

    assert [item["title"] for item in items] == ["First story", "Second story"]
    assert session.calls == [("https://example.com/feed", 5)]
    assert session.headers["User-Agent"] == "Mozilla/5.0 (compatible; RecapletBot/1.0)"


def test_network_error_raises_feed_fetch_error():
    reader = FeedReader(session=FakeSession(requests.ConnectionError("unreachable")))
    with pytest.raises(FeedFetchError, match="unreachable"):
        reader.fetch(SOURCE)


def test_http_error_raises_feed_fetch_error():
    reader = FeedReader(session=FakeSession(FakeResponse(b"", status_code=500)))
    with pytest.raises(FeedFetchError):
        reader.fetch(SOURCE)


def test_unparseable_feed_raises_feed_fetch_error():
    reader = FeedReader(session=FakeSession(FakeResponse(b"this is not a feed <<<")))
    with pytest.raises(FeedFetchError, match="Unparseable"):
        reader.fetch(SOURCE)


def test_slow_feed_raises_feed_fetch_error_at_deadline():
    ticks = iter([0.0, 1.0, 11.0])
    response = FakeResponse(RSS)
    reader = FeedReader(timeout=10, session=FakeSession(response), clock=lambda: next(ticks))

    with pytest.raises(FeedFetchError, match="deadline"):
        reader.fetch(SOURCE)
    assert response.closed
