"""Tests for import parsers and URL helpers."""

import pytest

from bookmarkbrain.core.import_parsers import (
    ImportCandidate,
    parse_bookmarks_html,
    parse_import_text,
    parse_url_list,
)
from bookmarkbrain.utils.url_utils import (
    URLValidationError,
    extract_hostname,
    fallback_title,
    favicon_url,
    validate_url_scheme,
)

NETSCAPE_EXPORT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
    <DT><H3>Folder</H3>
    <DL><p>
        <DT><A HREF="https://example.com/a" ADD_DATE="1700000000">Example A</A>
        <DT><A HREF="http://example.org/b"></A>
        <DT><A HREF="javascript:alert(1)">Bookmarklet</A>
        <DT><A HREF="place:sort=8">Recent</A>
    </DL><p>
    <DT><A HREF="  https://example.net/c  ">  Spaced  </A>
</DL><p>
"""


class TestParseBookmarksHtml:
    def test_extracts_http_anchors_in_order(self):
        candidates = parse_bookmarks_html(NETSCAPE_EXPORT)

        assert candidates == [
            ImportCandidate(url="https://example.com/a", title="Example A"),
            ImportCandidate(url="http://example.org/b", title="http://example.org/b"),
            ImportCandidate(url="https://example.net/c", title="Spaced"),
        ]

    def test_no_anchors(self):
        assert parse_bookmarks_html("<html><body>nothing</body></html>") == []


class TestParseUrlList:
    def test_one_url_per_line(self):
        text = "https://a.com\n\n  http://b.com/path  \nnot a url\nftp://c.com\r\nhttps://d.com"

        candidates = parse_url_list(text)

        assert [c.url for c in candidates] == [
            "https://a.com",
            "http://b.com/path",
            "https://d.com",
        ]
        assert all(c.title == "" for c in candidates)

    def test_duplicates_are_kept_for_the_manager(self):
        assert len(parse_url_list("https://a.com\nhttps://a.com")) == 2


class TestParseImportText:
    def test_detects_html(self):
        candidates = parse_import_text('<DT><A HREF="https://a.com">A</A>')
        assert candidates == [ImportCandidate(url="https://a.com", title="A")]

    def test_falls_back_to_url_list(self):
        candidates = parse_import_text("https://a.com\nhttps://b.com")
        assert [c.url for c in candidates] == ["https://a.com", "https://b.com"]


class TestUrlUtils:
    def test_extract_hostname(self):
        assert extract_hostname("https://www.GitHub.com:443/user/repo") == "www.github.com"
        assert extract_hostname("not a url") == ""

    def test_fallback_title(self):
        assert fallback_title("https://example.com/page") == "example.com"
        assert fallback_title("https://") == "https://"

    def test_favicon_url(self):
        assert favicon_url("https://example.com/page") == (
            "https://www.google.com/s2/favicons?domain=example.com&sz=32"
        )
        assert favicon_url("https://") == ""

    def test_validate_url_scheme_rejects_malformed_url(self):
        with pytest.raises(URLValidationError, match="Malformed URL"):
            validate_url_scheme("https://[oops")

    def test_helpers_tolerate_malformed_url(self):
        assert extract_hostname("https://[oops") == ""
        assert fallback_title("https://[oops") == "https://[oops"
        assert favicon_url("https://[oops") == ""
