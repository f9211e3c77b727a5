"""URL normalization and provisional classification for X links.

Pure string parsing: nothing here touches the network or the browser.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import InvalidURLError, UnrecognizedShapeError

CANONICAL_HOST = "x.com"

ALLOWED_HOSTS = frozenset({
    "x.com",
    "www.x.com",
    "mobile.x.com",
    "twitter.com",
    "www.twitter.com",
    "mobile.twitter.com",
})

# Share-tracking parameter; everything else in the query is dropped.
_KEPT_QUERY_PARAMS = ("s",)

_VALID_SCHEMES = {"http", "https"}

_ARTICLE_MARKER = "/i/articles/"
_STATUS_RE = re.compile(r"^/([^/]+)/status/(\d+)")


class ContentType(str, enum.Enum):
    ARTICLE = "article"
    POST = "post"
    # Only produced by extraction, never by ``classify``.
    THREAD = "thread"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one URL from its shape alone."""

    valid: bool
    content_type: ContentType
    url: str
    username: str | None = None
    post_id: str | None = None
    needs_thread_check: bool = False
    error_reason: str | None = None
    error_code: str | None = None

    def __post_init__(self) -> None:
        if self.valid and self.content_type is ContentType.UNKNOWN:
            raise ValueError("a valid classification needs a known content type")

    def raise_for_invalid(self) -> None:
        """Raise the matching :class:`ConversionError` if the URL was rejected."""
        if self.valid:
            return
        if self.error_code == UnrecognizedShapeError.code:
            raise UnrecognizedShapeError(self.error_reason, url=self.url)
        raise InvalidURLError(self.error_reason, url=self.url)


def _invalid(url: str, reason: str, code: str = InvalidURLError.code) -> ClassificationResult:
    return ClassificationResult(
        valid=False,
        content_type=ContentType.UNKNOWN,
        url=url,
        error_reason=reason,
        error_code=code,
    )


def is_allowed_host(hostname: str) -> bool:
    return hostname.lower() in ALLOWED_HOSTS


def normalize(raw_url: str) -> str:
    """Canonicalize an X URL so equivalent links compare equal.

    Both brands and their ``www``/``mobile`` variants collapse onto
    ``x.com``, the query keeps only the share parameter and the fragment is
    dropped. Anything that doesn't parse as an absolute URL is returned
    unchanged.
    """
    try:
        parts = urlsplit(raw_url.strip())
        hostname = parts.hostname
        port = parts.port
    except (ValueError, AttributeError):
        return raw_url

    if not parts.scheme or not hostname:
        return raw_url

    host = CANONICAL_HOST if is_allowed_host(hostname) else hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is not None:
        host = f"{host}:{port}"
    userinfo, _, _ = parts.netloc.rpartition("@")
    if userinfo:
        host = f"{userinfo}@{host}"

    query = urlencode([
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key in _KEPT_QUERY_PARAMS
    ])

    return urlunsplit((parts.scheme.lower(), host, parts.path or "/", query, ""))


def classify(url: str) -> ClassificationResult:
    """Decide from the URL alone whether it points at an article or a post."""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except (ValueError, AttributeError):
        return _invalid(url, "Invalid URL format")

    if parts.scheme.lower() not in _VALID_SCHEMES or not hostname:
        return _invalid(url, "Invalid URL format")

    if not is_allowed_host(hostname):
        return _invalid(url, "Invalid X domain")

    path = parts.path

    if _ARTICLE_MARKER in path:
        return ClassificationResult(valid=True, content_type=ContentType.ARTICLE, url=url)

    match = _STATUS_RE.match(path)
    if match:
        return ClassificationResult(
            valid=True,
            content_type=ContentType.POST,
            url=url,
            username=match.group(1),
            post_id=match.group(2),
            needs_thread_check=True,
        )

    return _invalid(url, "unrecognized URL shape", UnrecognizedShapeError.code)
