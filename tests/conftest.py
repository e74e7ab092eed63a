"""Shared fixtures."""

from typing import Dict, List, Optional

import pytest

from bookmarkbrain.core.bookmark_manager import BookmarkManager
from bookmarkbrain.core.bookmark_store import BookmarkStore
from bookmarkbrain.core.kv_store import MemoryKeyValueStore
from bookmarkbrain.core.summarizer import SummarizerError
from bookmarkbrain.models.bookmark import Category, SummaryResult


class FakeSummarizer:
    """Records calls and answers from a per-URL table."""

    def __init__(
        self,
        results: Optional[Dict[str, SummaryResult]] = None,
        failing: Optional[set] = None,
    ):
        self.results = results or {}
        self.failing = failing or set()
        self.calls: List[str] = []

    async def summarize(self, url: str) -> SummaryResult:
        self.calls.append(url)
        if url in self.failing:
            raise SummarizerError("network", f"unreachable: {url}")
        return self.results.get(
            url,
            SummaryResult(
                title=f"Title for {url}",
                summary=f"Summary of {url}",
                takeaways=["one", "two", "three"],
                category=Category.TECHNOLOGY,
            ),
        )


@pytest.fixture
def store():
    return BookmarkStore(MemoryKeyValueStore())


@pytest.fixture
def manager(store):
    return BookmarkManager(store)


@pytest.fixture
def fake_summarizer():
    return FakeSummarizer()


@pytest.fixture
def make_summarizer():
    """Factory for summarizers with per-URL results or failures."""
    return FakeSummarizer


@pytest.fixture(autouse=True)
def isolated_api_key(monkeypatch):
    """Undo GOOGLE_API_KEY values that load_dotenv exports during a test."""
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    monkeypatch.delenv("GOOGLE_API_KEY")
