"""URL validation and parsing utilities."""

from urllib.parse import quote, urlparse

FAVICON_TEMPLATE = "https://www.google.com/s2/favicons?domain={host}&sz=32"


class URLValidationError(Exception):
    """URL validation error."""

    pass


def is_http_url(text: str) -> bool:
    """Return True if text starts with an http:// or https:// prefix."""
    return text.startswith("http://") or text.startswith("https://")


def validate_url_scheme(url: str) -> None:
    """Validate URL has allowed scheme (http/https only).

    Args:
        url: URL to validate

    Raises:
        URLValidationError: If URL scheme is not allowed
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Malformed URL: {e}") from e

    if not parsed.scheme:
        raise URLValidationError("URL missing scheme (http:// or https://)")

    if parsed.scheme not in ["http", "https"]:
        raise URLValidationError(
            f"URL scheme '{parsed.scheme}' not allowed. Only http:// and https:// are permitted."
        )


def extract_hostname(url: str) -> str:
    """Extract the hostname from a URL.

    Args:
        url: URL to extract the host from

    Returns:
        Lowercased hostname, or an empty string if the URL has none

    Example:
        "https://www.GitHub.com:443/user/repo" -> "www.github.com"
    """
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def fallback_title(url: str) -> str:
    """Title used when an import provides none: the hostname, else the raw URL."""
    return extract_hostname(url) or url


def favicon_url(url: str) -> str:
    """Build the favicon service URL for a bookmark's host.

    Returns an empty string when the URL has no host.
    """
    host = extract_hostname(url)
    if not host:
        return ""
    return FAVICON_TEMPLATE.format(host=quote(host, safe=".-"))
