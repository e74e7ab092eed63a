"""Unit tests for the summarizer client and model-output parsing."""

import json

import httpx
import pytest

from bookmarkbrain.core.summarizer import (
    FALLBACK_SUMMARY,
    FALLBACK_TAKEAWAY,
    NO_CONTENT_MARKER,
    HttpSummarizer,
    SummarizerClient,
    SummarizerError,
    build_prompt,
    create_summarizer,
    find_json_object,
    parse_summary_payload,
    sanitize_page_text,
)
from bookmarkbrain.models.bookmark import Category
from bookmarkbrain.models.config import AppConfig

PAGE_URL = "https://example.com/article"


def _gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class _FakeAsyncClient:
    """Stands in for httpx.AsyncClient, answering GET and POST from callables."""

    def __init__(self, calls, on_get=None, on_post=None):
        self.calls = calls
        self.on_get = on_get
        self.on_post = on_post

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def get(self, url):
        self.calls.append({"method": "GET", "url": url})
        return self.on_get(url)

    async def post(self, endpoint, params=None, headers=None, json=None):
        self.calls.append(
            {"method": "POST", "url": endpoint, "params": params, "headers": headers, "json": json}
        )
        return self.on_post(endpoint)


def _install_client(monkeypatch, calls, on_get=None, on_post=None):
    monkeypatch.setattr(
        "bookmarkbrain.core.summarizer.httpx.AsyncClient",
        lambda **kwargs: _FakeAsyncClient(calls, on_get, on_post),
    )


def _response(status_code, method="POST", url="https://api.test", **kwargs):
    return httpx.Response(status_code, request=httpx.Request(method, url), **kwargs)


def _html_page(url):
    return _response(
        200,
        method="GET",
        url=url,
        headers={"content-type": "text/html; charset=utf-8"},
        text="<html><head><script>var x = 1;</script><style>p {}</style></head>"
             "<body><p>Hello   world</p>\n<p>Second</p></body></html>",
    )


def _model_reply(text):
    return lambda endpoint: _response(200, json=_gemini_payload(text))


class TestFindJsonObject:
    def test_plain_object(self):
        assert find_json_object('{"a": 1}') == '{"a": 1}'

    def test_surrounded_by_prose_and_fences(self):
        text = 'Sure!\n```json\n{"title": "T", "nested": {"x": 1}}\n```\nDone {not json}'
        assert find_json_object(text) == '{"title": "T", "nested": {"x": 1}}'

    def test_braces_inside_strings(self):
        text = 'x {"summary": "uses {braces} and \\"quotes}\\""} y'
        assert json.loads(find_json_object(text)) == {"summary": 'uses {braces} and "quotes}"'}

    def test_first_object_wins(self):
        assert find_json_object('{"a": 1} {"b": 2}') == '{"a": 1}'

    def test_none_when_absent_or_unbalanced(self):
        assert find_json_object("no json here") is None
        assert find_json_object('{"a": 1') is None


class TestParseSummaryPayload:
    def test_valid_payload(self):
        text = json.dumps({
            "title": "  A Title ",
            "summary": "What it is",
            "takeaways": ["one", "two", "three", "four"],
            "category": "Science",
        })

        result = parse_summary_payload(text, PAGE_URL)

        assert result.title == "A Title"
        assert result.summary == "What it is"
        assert result.takeaways == ["one", "two", "three"]
        assert result.category == Category.SCIENCE

    def test_unknown_category_becomes_other(self):
        result = parse_summary_payload('{"title": "t", "category": "Knitting"}', PAGE_URL)
        assert result.category == Category.OTHER
        assert result.takeaways == []

    def test_missing_title_uses_hostname(self):
        result = parse_summary_payload('{"summary": "s"}', PAGE_URL)
        assert result.title == "example.com"

    def test_fallback_on_garbage(self):
        result = parse_summary_payload("I cannot help with that.", PAGE_URL)

        assert result.title == "example.com"
        assert result.summary == FALLBACK_SUMMARY
        assert result.takeaways == [FALLBACK_TAKEAWAY]
        assert result.category == Category.OTHER

    def test_fallback_on_invalid_json(self):
        result = parse_summary_payload("{'title': 'single quotes'}", PAGE_URL)
        assert result.summary == FALLBACK_SUMMARY


class TestSanitize:
    def test_strips_scripts_styles_and_whitespace(self):
        html = "<script>evil()</script><style>.a{}</style><div>Hello \n\n   world</div>"
        assert sanitize_page_text(html) == "Hello world"

    def test_truncates(self):
        assert len(sanitize_page_text("<p>" + "x" * 9000 + "</p>")) == 8000
        assert sanitize_page_text("<p>abcdef</p>", max_chars=3) == "abc"


class TestBuildPrompt:
    def test_mentions_url_and_categories(self):
        prompt = build_prompt(PAGE_URL, "body text")
        assert PAGE_URL in prompt
        assert "body text" in prompt
        for category in Category:
            assert category.value in prompt

    def test_marks_missing_content(self):
        assert NO_CONTENT_MARKER in build_prompt(PAGE_URL, "")


class TestSummarizerClient:
    @pytest.mark.asyncio
    async def test_summarize_happy_path(self, monkeypatch):
        calls = []
        reply = '```json\n{"title": "Hello", "summary": "S", "takeaways": ["a"], "category": "AI"}\n```'
        _install_client(monkeypatch, calls, on_get=_html_page, on_post=_model_reply(reply))
        client = SummarizerClient(AppConfig(), api_key="test-key")

        result = await client.summarize(PAGE_URL)

        assert result.title == "Hello"
        assert result.category == Category.AI

        get_call, post_call = calls
        assert get_call == {"method": "GET", "url": PAGE_URL}
        assert post_call["url"].endswith("/models/gemini-2.0-flash:generateContent")
        assert post_call["params"] == {"key": "test-key"}
        assert post_call["json"]["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 500}
        prompt = post_call["json"]["contents"][0]["parts"][0]["text"]
        assert "Hello world Second" in prompt
        assert "var x" not in prompt

    @pytest.mark.asyncio
    async def test_page_fetch_failure_degrades_to_url_only(self, monkeypatch):
        calls = []

        def refuse(url):
            raise httpx.ConnectError("connection refused")

        _install_client(monkeypatch, calls, on_get=refuse, on_post=_model_reply('{"title": "T"}'))
        client = SummarizerClient(AppConfig(), api_key="test-key")

        result = await client.summarize(PAGE_URL)

        assert result.title == "T"
        prompt = calls[-1]["json"]["contents"][0]["parts"][0]["text"]
        assert NO_CONTENT_MARKER in prompt

    @pytest.mark.asyncio
    async def test_page_fetch_timeout_and_http_error_degrade(self, monkeypatch):
        def slow(url):
            raise httpx.ReadTimeout("too slow")

        _install_client(monkeypatch, [], on_get=slow)
        assert await SummarizerClient(AppConfig(), "k").fetch_page_text(PAGE_URL) == ""

        _install_client(monkeypatch, [], on_get=lambda url: _response(404, method="GET", url=url))
        assert await SummarizerClient(AppConfig(), "k").fetch_page_text(PAGE_URL) == ""

    @pytest.mark.asyncio
    async def test_non_text_content_skipped(self, monkeypatch):
        def pdf(url):
            return _response(
                200, method="GET", url=url,
                headers={"content-type": "application/pdf"}, content=b"%PDF-1.4",
            )

        _install_client(monkeypatch, [], on_get=pdf)
        assert await SummarizerClient(AppConfig(), "k").fetch_page_text(PAGE_URL) == ""

    @pytest.mark.asyncio
    async def test_malformed_model_output_uses_fallback(self, monkeypatch):
        _install_client(
            monkeypatch, [], on_get=_html_page, on_post=_model_reply("Sorry, no JSON today.")
        )

        result = await SummarizerClient(AppConfig(), "k").summarize(PAGE_URL)

        assert result.summary == FALLBACK_SUMMARY
        assert result.takeaways == [FALLBACK_TAKEAWAY]

    @pytest.mark.asyncio
    async def test_missing_candidate_uses_fallback(self, monkeypatch):
        _install_client(
            monkeypatch, [], on_get=_html_page,
            on_post=lambda endpoint: _response(200, json={"candidates": []}),
        )

        result = await SummarizerClient(AppConfig(), "k").summarize(PAGE_URL)

        assert result.summary == FALLBACK_SUMMARY

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,failure_type",
        [
            (401, "authentication"),
            (403, "authentication"),
            (429, "ratelimit"),
            (500, "server_error"),
            (503, "server_error"),
            (400, "invalid_request"),
        ],
    )
    async def test_error_status_raises(self, monkeypatch, status_code, failure_type):
        _install_client(
            monkeypatch, [], on_get=_html_page,
            on_post=lambda endpoint: _response(status_code, text="nope"),
        )

        with pytest.raises(SummarizerError) as exc_info:
            await SummarizerClient(AppConfig(), "k").summarize(PAGE_URL)

        assert exc_info.value.failure_type == failure_type

    @pytest.mark.asyncio
    async def test_model_timeout_raises(self, monkeypatch):
        def slow(endpoint):
            raise httpx.ReadTimeout("too slow")

        _install_client(monkeypatch, [], on_get=_html_page, on_post=slow)

        with pytest.raises(SummarizerError) as exc_info:
            await SummarizerClient(AppConfig(), "k").summarize(PAGE_URL)

        assert exc_info.value.failure_type == "timeout"

    @pytest.mark.asyncio
    async def test_model_network_error_raises(self, monkeypatch):
        def down(endpoint):
            raise httpx.ConnectError("unreachable")

        _install_client(monkeypatch, [], on_get=_html_page, on_post=down)

        with pytest.raises(SummarizerError) as exc_info:
            await SummarizerClient(AppConfig(), "k").summarize(PAGE_URL)

        assert exc_info.value.failure_type == "network"

    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self, monkeypatch):
        _install_client(monkeypatch, [], on_get=_html_page)

        with pytest.raises(SummarizerError) as exc_info:
            await SummarizerClient(AppConfig(), None).summarize(PAGE_URL)

        assert exc_info.value.failure_type == "configuration"


class TestHttpSummarizer:
    @pytest.mark.asyncio
    async def test_posts_url_and_parses_result(self, monkeypatch):
        calls = []
        body = {"title": "T", "summary": "S", "takeaways": ["a", "b"], "category": "Finance"}
        _install_client(monkeypatch, calls, on_post=lambda endpoint: _response(200, json=body))

        result = await HttpSummarizer("http://summarizer.local/api/summarize").summarize(PAGE_URL)

        assert result.category == Category.FINANCE
        assert calls[0]["url"] == "http://summarizer.local/api/summarize"
        assert calls[0]["json"] == {"url": PAGE_URL}

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, monkeypatch):
        _install_client(
            monkeypatch, [],
            on_post=lambda endpoint: _response(500, json={"error": "Failed to summarize"}),
        )

        with pytest.raises(SummarizerError) as exc_info:
            await HttpSummarizer("http://summarizer.local/api/summarize").summarize(PAGE_URL)

        assert exc_info.value.failure_type == "server_error"

    @pytest.mark.asyncio
    async def test_extra_takeaways_truncated(self, monkeypatch):
        body = {"title": "T", "summary": "S", "takeaways": ["1", "2", "3", "4", "5"], "category": "News"}
        _install_client(monkeypatch, [], on_post=lambda endpoint: _response(200, json=body))

        result = await HttpSummarizer("http://summarizer.local/api/summarize").summarize(PAGE_URL)

        assert result.takeaways == ["1", "2", "3"]
        assert result.category == Category.NEWS

    @pytest.mark.asyncio
    async def test_unexpected_body_raises(self, monkeypatch):
        _install_client(
            monkeypatch, [], on_post=lambda endpoint: _response(200, text="<html>oops</html>")
        )

        with pytest.raises(SummarizerError) as exc_info:
            await HttpSummarizer("http://summarizer.local/api/summarize").summarize(PAGE_URL)

        assert exc_info.value.failure_type == "invalid_response"


class TestCreateSummarizer:
    def test_direct_client_by_default(self):
        assert isinstance(create_summarizer(AppConfig(), "k"), SummarizerClient)

    def test_remote_endpoint_when_configured(self):
        config = AppConfig(remote_summarize_url="http://summarizer.local/api/summarize")
        summarizer = create_summarizer(config, None)
        assert isinstance(summarizer, HttpSummarizer)
        assert summarizer.endpoint_url == "http://summarizer.local/api/summarize"
