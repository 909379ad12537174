"""Configuration settings for the news feed aggregator."""
import json
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from models import FeedSource

load_dotenv()
load_dotenv(".env.local")

# Numeric variables that could not be parsed; reported by Settings.validate_for_run
INVALID_ENV: List[str] = []


def _env_number(name: str, default, cast=int):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        INVALID_ENV.append(f"{name}={raw!r}")
        return default


# Summarizer provider: openai | azure | gemini | extractive
SUMMARIZER_PROVIDER = os.getenv("SUMMARIZER_PROVIDER", "openai").lower()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
AZURE_OPENAI_API_KEY = os.getenv("AZURE_OPENAI_API_KEY", "")
GOOGLE_GENERATIVE_AI_API_KEY = os.getenv("GOOGLE_GENERATIVE_AI_API_KEY", "")

# Model settings
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
AZURE_OPENAI_ENDPOINT = os.getenv("AZURE_OPENAI_ENDPOINT", "")
AZURE_OPENAI_DEPLOYMENT_NAME = os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "")
AZURE_OPENAI_API_VERSION = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
SUMMARY_LANGUAGE = os.getenv("SUMMARY_LANGUAGE", "Japanese")

# Prices in USD per million tokens, used for the cost estimate in run logs
INPUT_TOKEN_PRICE = _env_number("INPUT_TOKEN_PRICE", 0.0, float)
OUTPUT_TOKEN_PRICE = _env_number("OUTPUT_TOKEN_PRICE", 0.0, float)

# Feeds and output
FEEDS_PATH = os.getenv("FEEDS_PATH", "feeds.json")
DATA_PATH = os.getenv("DATA_PATH", "data/news.json")
MIRROR_PATH = os.getenv("MIRROR_PATH", "public/data/news.json")

# Pipeline settings
ITEMS_PER_FEED = _env_number("ITEMS_PER_FEED", 10)
REQUEST_DELAY = _env_number("REQUEST_DELAY", 0.0, float)  # Seconds between summarizer calls
RETENTION_LIMIT = _env_number("RETENTION_LIMIT", 1000)
MIN_CONTENT_LENGTH = 50
MAX_CONTENT_LENGTH = 2000

# Webpage fallback
FETCH_RETRIES = _env_number("FETCH_RETRIES", 3)
FETCH_TIMEOUT = _env_number("FETCH_TIMEOUT", 10.0, float)
USER_AGENT = "Mozilla/5.0 (compatible; RecapletBot/1.0)"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# API Settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _env_number("API_PORT", 8000)

PROVIDERS = ("openai", "azure", "gemini", "extractive")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseModel):
    """Explicit configuration handed to the pipeline at construction."""
    provider: str = SUMMARIZER_PROVIDER
    openai_api_key: str = OPENAI_API_KEY
    openai_model: str = OPENAI_MODEL
    azure_api_key: str = AZURE_OPENAI_API_KEY
    azure_endpoint: str = AZURE_OPENAI_ENDPOINT
    azure_deployment: str = AZURE_OPENAI_DEPLOYMENT_NAME
    azure_api_version: str = AZURE_OPENAI_API_VERSION
    gemini_api_key: str = GOOGLE_GENERATIVE_AI_API_KEY
    gemini_model: str = GEMINI_MODEL
    summary_language: str = SUMMARY_LANGUAGE
    input_token_price: float = INPUT_TOKEN_PRICE
    output_token_price: float = OUTPUT_TOKEN_PRICE
    feeds: List[FeedSource] = Field(default_factory=list)
    data_path: str = DATA_PATH
    mirror_path: str = MIRROR_PATH
    items_per_feed: int = Field(default=ITEMS_PER_FEED, ge=1)
    request_delay: float = Field(default=REQUEST_DELAY, ge=0)
    retention_limit: int = Field(default=RETENTION_LIMIT, ge=1)
    fetch_retries: int = Field(default=FETCH_RETRIES, ge=1)
    fetch_timeout: float = Field(default=FETCH_TIMEOUT, gt=0)
    user_agent: str = USER_AGENT

    def validate_for_run(self):
        """Fail fast before any network activity."""
        if INVALID_ENV:
            raise ConfigurationError(f"Invalid numeric environment variables: {', '.join(INVALID_ENV)}")
        if self.provider not in PROVIDERS:
            raise ConfigurationError(
                f"Unknown summarizer provider '{self.provider}'. Expected one of: {', '.join(PROVIDERS)}"
            )
        missing = []
        if self.provider == "openai" and not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        elif self.provider == "azure":
            if not self.azure_api_key:
                missing.append("AZURE_OPENAI_API_KEY")
            if not self.azure_endpoint:
                missing.append("AZURE_OPENAI_ENDPOINT")
            if not self.azure_deployment:
                missing.append("AZURE_OPENAI_DEPLOYMENT_NAME")
        elif self.provider == "gemini" and not self.gemini_api_key:
            missing.append("GOOGLE_GENERATIVE_AI_API_KEY")
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} is not set")
        if not self.feeds:
            raise ConfigurationError("No feed sources configured")


def load_feed_sources(path: str = FEEDS_PATH) -> List[FeedSource]:
    """Read feed sources from a JSON file shaped like {"feeds": [{"name": ..., "url": ...}]}."""
    feeds_file = Path(path)
    if not feeds_file.exists():
        raise ConfigurationError(f"Feed configuration not found: {path}")
    try:
        data = json.loads(feeds_file.read_text(encoding="utf-8"))
        return [FeedSource(**entry) for entry in data.get("feeds", [])]
    except (ValueError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Invalid feed configuration in {path}: {e}") from e


def load_settings(feeds_path: Optional[str] = None, **overrides) -> Settings:
    """Build Settings from the environment, the feeds file and explicit overrides."""
    if "feeds" not in overrides:
        overrides["feeds"] = load_feed_sources(feeds_path or FEEDS_PATH)
    clean = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**clean)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
