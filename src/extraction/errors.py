"""Failure taxonomy for URL conversion.

Each error carries a stable ``code`` and the HTTP status the API layer
answers with, so clients can tell "fix your input" (4xx from the
classifier) from "try again later" (503/504) from "this content can't be
converted" (422).
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every classified conversion failure."""

    code = "conversion_failed"
    status_code = 500
    default_message = "Conversion failed"

    def __init__(self, message: str | None = None, *, url: str | None = None) -> None:
        self.message = message or self.default_message
        self.url = url
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.message, "code": self.code}


class InvalidURLError(ConversionError):
    """Malformed input or a host outside the allowlist."""

    code = "invalid_url"
    status_code = 400
    default_message = "Invalid URL format"


class UnrecognizedShapeError(ConversionError):
    """Allowed host, but the path is neither an article nor a post."""

    code = "unrecognized_shape"
    status_code = 400
    default_message = "unrecognized URL shape"


class NavigationTimeoutError(ConversionError):
    code = "navigation_timeout"
    status_code = 504
    default_message = "Page did not load in time"


class ContentNotFoundError(ConversionError):
    """The expected content root was absent after the best-effort wait."""

    code = "content_not_found"
    status_code = 422
    default_message = "Content not found"


class BrowserLaunchError(ConversionError):
    code = "browser_unavailable"
    status_code = 503
    default_message = "Headless browser could not be started"


class RenderError(ConversionError):
    code = "render_failed"
    status_code = 500
    default_message = "Failed to generate PDF"
