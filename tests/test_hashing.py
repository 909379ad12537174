import hashlib

from hashing import article_id, content_hash


def test_article_id_is_stable_and_twelve_hex_chars():
    url = "https://example.com/a"
    first = article_id(url)
    assert first == article_id(url)
    assert len(first) == 12
    int(first, 16)


def test_article_id_matches_sha256_prefix():
    url = "https://example.com/article-1"
    assert article_id(url) == hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]


def test_distinct_urls_get_distinct_ids():
    urls = [f"https://example.com/article-{i}" for i in range(500)]
    assert len({article_id(url) for url in urls}) == len(urls)


def test_content_hash_changes_with_any_character():
    text = "Breaking: the council approved the budget."
    assert content_hash(text) == content_hash(text)
    assert content_hash(text) != content_hash(text.replace("B", "b"))
    assert content_hash(text) != content_hash(text + ".")


def test_content_hash_only_considers_first_2000_chars():
    base = "x" * 2000
    assert content_hash(base + "tail one") == content_hash(base + "tail two")
    assert content_hash(base) != content_hash("y" + base[1:])


def test_content_hash_and_article_id_agree_on_same_input():
    # Same algorithm family; only the input domain differs
    assert content_hash("https://example.com/a") == article_id("https://example.com/a")
