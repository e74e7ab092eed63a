"""Parsers turning exported bookmark files and pasted text into import candidates."""

import re
from dataclasses import dataclass
from typing import List

from bs4 import BeautifulSoup

from ..utils.url_utils import is_http_url

_ANCHOR_TAG = re.compile(r"<a\s", re.IGNORECASE)


@dataclass(frozen=True)
class ImportCandidate:
    """A URL to import with an optional title (empty means derive from the URL)."""

    url: str
    title: str = ""


def parse_bookmarks_html(html: str) -> List[ImportCandidate]:
    """Extract anchors from a Netscape-format bookmark export.

    Only http(s) links are kept. An empty anchor text falls back to the URL.

    Example:
        '<DT><A HREF="https://example.com" ADD_DATE="1">Example</A>'
        -> [ImportCandidate(url="https://example.com", title="Example")]
    """
    soup = BeautifulSoup(html, "html.parser")

    candidates: List[ImportCandidate] = []
    for anchor in soup.find_all("a", href=True):
        url = anchor["href"].strip()
        if not is_http_url(url):
            continue
        title = anchor.get_text().strip()
        candidates.append(ImportCandidate(url=url, title=title or url))

    return candidates


def parse_url_list(text: str) -> List[ImportCandidate]:
    """Extract one URL per line from pasted text, skipping anything else."""
    candidates: List[ImportCandidate] = []
    for line in text.splitlines():
        url = line.strip()
        if is_http_url(url):
            candidates.append(ImportCandidate(url=url))
    return candidates


def parse_import_text(text: str) -> List[ImportCandidate]:
    """Parse either format, picking the HTML parser when the text holds anchors."""
    if _ANCHOR_TAG.search(text):
        return parse_bookmarks_html(text)
    return parse_url_list(text)
