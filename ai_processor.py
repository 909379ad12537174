"""Article summarization through a pluggable language-model provider."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from openai import AzureOpenAI, OpenAI

from config import ConfigurationError, Settings
from models import SummaryResult, TokenUsage

logger = logging.getLogger(__name__)

MAX_SUMMARY_CHARS = 200
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class SummarizationError(Exception):
    """The summarizer failed for a single article."""


def build_prompt(text: str, language: str) -> str:
    """Fixed instruction followed by the (already truncated) article text."""
    return (
        f"Summarize the following article in {language} "
        f"in at most {MAX_SUMMARY_CHARS} characters:\n\n{text}"
    )


def estimate_cost(usage: TokenUsage, input_price: float, output_price: float) -> float:
    """USD cost of the given usage; prices are per million tokens."""
    return (usage.input_tokens * input_price + usage.output_tokens * output_price) / 1_000_000


class Summarizer(ABC):
    """Capability interface: text in, short summary out."""

    name = "summarizer"

    @abstractmethod
    def summarize(self, text: str) -> SummaryResult:
        ...


class ChatCompletionSummarizer(Summarizer):
    """Summarizer backed by any OpenAI-compatible chat completions endpoint."""

    name = "openai"

    def __init__(self, client, model: str, language: str, max_tokens: int = 300, temperature: float = 0.3):
        self.client = client
        self.model = model
        self.language = language
        self.max_tokens = max_tokens
        self.temperature = temperature

    def summarize(self, text: str) -> SummaryResult:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a news summarizer. Create concise, informative summaries."},
                    {"role": "user", "content": build_prompt(text, self.language)},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            raise SummarizationError(f"{self.name} request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise SummarizationError(f"{self.name} returned an empty summary")

        usage = TokenUsage()
        if response.usage is not None:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )
        return SummaryResult(text=response.choices[0].message.content.strip(), usage=usage)


class OpenAISummarizer(ChatCompletionSummarizer):
    name = "openai"

    def __init__(self, api_key: str, model: str, language: str, client: Optional[OpenAI] = None):
        super().__init__(client or OpenAI(api_key=api_key), model, language)


class AzureOpenAISummarizer(ChatCompletionSummarizer):
    name = "azure"

    def __init__(self, api_key: str, endpoint: str, deployment: str, api_version: str, language: str):
        client = AzureOpenAI(api_key=api_key, azure_endpoint=endpoint, api_version=api_version)
        # Azure routes by deployment name rather than model name
        super().__init__(client, deployment, language)


class GeminiSummarizer(ChatCompletionSummarizer):
    name = "gemini"

    def __init__(self, api_key: str, model: str, language: str):
        client = OpenAI(api_key=api_key, base_url=GEMINI_OPENAI_BASE_URL)
        super().__init__(client, model, language)


class ExtractiveSummarizer(Summarizer):
    """Offline summary built from the leading sentences of the article."""

    name = "extractive"

    def summarize(self, text: str) -> SummaryResult:
        text = (text or "").strip()
        if not text:
            raise SummarizationError("Nothing to summarize")

        sentences = [s.strip() for s in text.replace("。", "。\n").replace(". ", ".\n").splitlines() if s.strip()]
        summary = ""
        for sentence in sentences:
            candidate = f"{summary} {sentence}".strip() if summary else sentence
            if len(candidate) > MAX_SUMMARY_CHARS:
                break
            summary = candidate

        # First sentence alone is too long
        if not summary:
            summary = text[: MAX_SUMMARY_CHARS - 3].rstrip() + "..."

        return SummaryResult(text=summary)


def create_summarizer(settings: Settings) -> Summarizer:
    """Pick the summarizer implementation named by the settings."""
    provider = settings.provider
    if provider == "openai":
        return OpenAISummarizer(settings.openai_api_key, settings.openai_model, settings.summary_language)
    if provider == "azure":
        return AzureOpenAISummarizer(
            settings.azure_api_key,
            settings.azure_endpoint,
            settings.azure_deployment,
            settings.azure_api_version,
            settings.summary_language,
        )
    if provider == "gemini":
        return GeminiSummarizer(settings.gemini_api_key, settings.gemini_model, settings.summary_language)
    if provider == "extractive":
        logger.info("Using extractive summarization (no language model calls)")
        return ExtractiveSummarizer()
    raise ConfigurationError(f"Unknown summarizer provider '{provider}'")
