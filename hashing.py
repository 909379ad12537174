"""Deterministic fingerprints for article identity and summary reuse."""
import hashlib

FINGERPRINT_LENGTH = 12
CONTENT_HASH_WINDOW = 2000


def _fingerprint(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def article_id(url: str) -> str:
    """Stable 12-hex id of an article, derived from its URL only."""
    return _fingerprint(url or "")


def content_hash(text: str) -> str:
    """12-hex fingerprint of the first 2000 characters of cleaned article text."""
    return _fingerprint((text or "")[:CONTENT_HASH_WINDOW])
