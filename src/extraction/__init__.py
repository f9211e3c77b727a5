"""X content extraction: classify a URL, render it headless, normalize the content."""

from __future__ import annotations

import logging

from .classifier import ClassificationResult, ContentType, classify, normalize
from .errors import (
    BrowserLaunchError,
    ContentNotFoundError,
    ConversionError,
    InvalidURLError,
    NavigationTimeoutError,
    RenderError,
    UnrecognizedShapeError,
)
from .extractor import ContentExtractor
from .models import Article, ImageRef, NormalizedContent, Post, Thread
from .session import BrowserSession, BrowserSessionManager, PageHandle, PageOptions

__all__ = [
    "Article",
    "BrowserLaunchError",
    "BrowserSession",
    "BrowserSessionManager",
    "ClassificationResult",
    "ContentExtractor",
    "ContentNotFoundError",
    "ContentType",
    "ConversionError",
    "ImageRef",
    "InvalidURLError",
    "NavigationTimeoutError",
    "NormalizedContent",
    "PageHandle",
    "PageOptions",
    "Post",
    "RenderError",
    "Thread",
    "UnrecognizedShapeError",
    "classify",
    "fetch_content",
    "normalize",
]

logger = logging.getLogger(__name__)


async def fetch_content(
    raw_url: str,
    sessions: BrowserSessionManager,
    extractor: ContentExtractor,
) -> NormalizedContent:
    """Extract normalized content for *raw_url*.

    Invalid or unrecognized URLs raise before any browser work happens.
    The extractor owns the page it is given and closes it on every path.
    """
    url = normalize(raw_url)
    classification = classify(url)
    classification.raise_for_invalid()

    logger.info(
        "url classified",
        extra={"url": url, "content_type": classification.content_type.value},
    )
    page = await sessions.new_page()
    return await extractor.extract(page, classification)
