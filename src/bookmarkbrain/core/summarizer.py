"""Summarizer client: page fetch, prompt, and tolerant parsing of model output."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from ..models.bookmark import MAX_TAKEAWAYS, Category, SummaryResult
from ..models.config import AppConfig
from ..utils.url_utils import extract_hostname

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; BookmarkBrain/1.0)"
FALLBACK_SUMMARY = "Could not generate summary"
FALLBACK_TAKEAWAY = "Visit the link for details"
NO_CONTENT_MARKER = "(could not fetch content - summarize based on URL alone)"

TEXT_CONTENT_TYPES = ("text/", "application/xhtml", "application/xml")


class SummarizerError(Exception):
    """The summarization endpoint could not be reached or refused the request."""

    def __init__(self, failure_type: str, message: str):
        super().__init__(message)
        self.failure_type = failure_type
        self.message = message


class Summarizer(Protocol):
    """Anything that can turn a URL into enrichment fields."""

    async def summarize(self, url: str) -> SummaryResult: ...


def sanitize_page_text(html: str, max_chars: int = 8000) -> str:
    """Reduce an HTML document to collapsed plain text of bounded length."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()

    text = " ".join(soup.get_text(separator=" ").split())
    return text[:max_chars]


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in text, or None.

    Braces inside JSON string literals do not count towards the balance.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)
    return None


def fallback_result(url: str) -> SummaryResult:
    """Minimal usable result for when the model output cannot be parsed."""
    return SummaryResult(
        title=extract_hostname(url) or url,
        summary=FALLBACK_SUMMARY,
        takeaways=[FALLBACK_TAKEAWAY],
        category=Category.OTHER,
    )


def parse_summary_payload(text: str, url: str) -> SummaryResult:
    """Turn raw model text into a SummaryResult, never raising.

    The first balanced JSON object in the text is decoded; anything else
    produces the fallback result.
    """
    candidate = find_json_object(text)
    if candidate is None:
        logger.warning(f"No JSON object in model output for {url}")
        return fallback_result(url)

    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"Unparseable JSON in model output for {url}: {e}")
        return fallback_result(url)

    if not isinstance(payload, dict):
        return fallback_result(url)

    takeaways = payload.get("takeaways")
    if isinstance(takeaways, list):
        takeaways = [str(t).strip() for t in takeaways if str(t).strip()][:MAX_TAKEAWAYS]
    else:
        takeaways = []

    try:
        return SummaryResult(
            title=_as_text(payload.get("title")) or extract_hostname(url) or url,
            summary=_as_text(payload.get("summary")),
            takeaways=takeaways,
            category=payload.get("category"),
        )
    except ValidationError as e:
        logger.warning(f"Model output for {url} failed validation: {e}")
        return fallback_result(url)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def build_prompt(url: str, content: str) -> str:
    categories = ", ".join(c.value for c in Category)
    return (
        "Analyze this web page and return a JSON object (no markdown, just raw JSON) "
        "with these fields:\n"
        '- "title": a concise title (max 80 chars)\n'
        '- "summary": a one-line summary of what this page is about (max 150 chars)\n'
        '- "takeaways": an array of exactly 3 key takeaways (each max 100 chars)\n'
        f'- "category": ONE category from this list: {categories}\n'
        "\n"
        f"URL: {url}\n"
        f"Page content: {content or NO_CONTENT_MARKER}\n"
        "\n"
        "Return ONLY valid JSON, no other text."
    )


class SummarizerClient:
    """Summarizes a URL with the Gemini generateContent API."""

    def __init__(self, config: AppConfig, api_key: Optional[str]):
        """Initialize summarizer client.

        Args:
            config: Application configuration (model, limits, timeouts)
            api_key: Gemini API key
        """
        self.config = config
        self.api_key = api_key

    async def summarize(self, url: str) -> SummaryResult:
        """Summarize one URL.

        Malformed model output yields the fallback result.

        Raises:
            SummarizerError: If the model endpoint is unreachable or rejects the call
        """
        content = await self.fetch_page_text(url)
        prompt = build_prompt(url, content)
        text = await self._generate_text(prompt)
        result = parse_summary_payload(text, url)
        logger.info(f"Summarized {url} as {result.category.value}")
        return result

    async def fetch_page_text(self, url: str) -> str:
        """Best-effort fetch of the page as sanitized text; empty on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=self.config.page_fetch_timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = await client.get(url)
                response.raise_for_status()

                content_type = response.headers.get("content-type", "").lower()
                if content_type and not content_type.startswith(TEXT_CONTENT_TYPES):
                    logger.debug(f"Skipping non-text content-type for {url}: {content_type}")
                    return ""

                html = response.text
        except httpx.TimeoutException:
            logger.warning(f"Page fetch timed out after {self.config.page_fetch_timeout}s: {url}")
            return ""
        except httpx.HTTPError as e:
            logger.warning(f"Page fetch failed for {url}: {e}")
            return ""

        return sanitize_page_text(html, self.config.max_page_chars)

    async def _generate_text(self, prompt: str) -> str:
        if not self.api_key:
            raise SummarizerError("configuration", "Gemini API key is not configured")

        endpoint = self.config.summarizer_endpoint.replace("{model}", self.config.summarizer_model)
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.summarizer_temperature,
                "maxOutputTokens": self.config.summarizer_max_output_tokens,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.config.summarizer_timeout_seconds) as client:
                response = await client.post(
                    endpoint,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json=body,
                )
        except httpx.TimeoutException as e:
            raise SummarizerError("timeout", "Summarization request timed out") from e
        except httpx.HTTPError as e:
            raise SummarizerError("network", f"Network error: {e}") from e

        self._raise_for_status(response)

        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"] or ""
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Model response carried no text candidate")
            return ""

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message = response.text[:500]
        if response.status_code in {401, 403}:
            raise SummarizerError("authentication", message)
        if response.status_code == 429:
            raise SummarizerError("ratelimit", message)
        if response.status_code >= 500:
            raise SummarizerError("server_error", message)
        raise SummarizerError("invalid_request", message)


class HttpSummarizer:
    """Calls a remote summarize endpoint that accepts ``{url}`` and returns a summary."""

    def __init__(self, endpoint_url: str, timeout: float = 60.0):
        self.endpoint_url = endpoint_url
        self.timeout = timeout

    async def summarize(self, url: str) -> SummaryResult:
        """Raises SummarizerError on transport failure or a non-2xx response."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint_url, json={"url": url})
        except httpx.TimeoutException as e:
            raise SummarizerError("timeout", "Summarize endpoint timed out") from e
        except httpx.HTTPError as e:
            raise SummarizerError("network", f"Network error: {e}") from e

        if response.status_code >= 300:
            raise SummarizerError(
                "server_error", f"Summarize endpoint returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("takeaways"), list):
                payload["takeaways"] = payload["takeaways"][:MAX_TAKEAWAYS]
            return SummaryResult.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise SummarizerError("invalid_response", f"Unexpected summarize response: {e}") from e


def create_summarizer(config: AppConfig, api_key: Optional[str]) -> Summarizer:
    """Pick the remote endpoint when configured, else call the model directly."""
    if config.remote_summarize_url:
        return HttpSummarizer(config.remote_summarize_url, timeout=config.summarizer_timeout_seconds * 2)
    return SummarizerClient(config, api_key)
