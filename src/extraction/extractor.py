"""Turn a rendered X page into :mod:`~src.extraction.models` content.

The browser-facing part (:class:`ContentExtractor`) only navigates, waits
and snapshots. Everything after the snapshot is plain functions over
:class:`~src.extraction.dom.DomNode`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Protocol
from urllib.parse import urlsplit

from .classifier import ClassificationResult, ContentType
from .dom import DomNode
from .errors import ContentNotFoundError, ConversionError, NavigationTimeoutError
from .models import Article, ImageRef, NormalizedContent, Post, Thread

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

ARTICLE_SELECTOR = "article"
ARTICLE_CONTENT_SELECTOR = '[data-testid="articleContent"]'
POST_SELECTOR = '[data-testid="tweet"]'
AUTHOR_NAME_SELECTOR = '[data-testid="User-Name"]'
POST_TEXT_SELECTOR = '[data-testid="tweetText"]'

NON_CONTENT_SELECTORS = (
    "nav",
    '[role="navigation"]',
    '[data-testid="advertisement"]',
    "aside",
    ".login-prompt",
)

# Content photos live under /media/; avatars, emoji and icons don't.
MEDIA_PATH_MARKER = "/media/"

_PERMALINK_MARKERS = ("/status/", "/i/articles/")

# Slack on top of Playwright's own timeouts before asyncio gives up.
_WAIT_GRACE_SECONDS = 1.0

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExtractionState(str, enum.Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    WAITING_FOR_CONTENT = "waiting_for_content"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class ExtractablePage(Protocol):
    """What the extractor needs from a browser page."""

    async def navigate(self, url: str, *, timeout: float, wait_until: str = ...) -> None: ...

    async def wait_for(self, selector: str, *, timeout: float) -> bool: ...

    async def snapshot(self) -> DomNode: ...

    async def close(self) -> None: ...


# --- DOM helpers ---


def is_media_url(src: str) -> bool:
    return MEDIA_PATH_MARKER in urlsplit(src).path


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a ``<time datetime=...>`` value; ``None`` if absent or garbled."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _collect_images(node: DomNode, *, media_only: bool) -> tuple[ImageRef, ...]:
    images: list[ImageRef] = []
    for img in node.select("img[src]"):
        src = img.attr("src")
        if not src:
            continue
        if media_only and not is_media_url(src):
            continue
        images.append(ImageRef(src=src, alt=img.attr("alt") or ""))
    return tuple(images)


def _first_path_segment(href: str) -> str:
    return urlsplit(href).path.strip("/").split("/", 1)[0]


def is_authored_by(container: DomNode, username: str) -> bool:
    """True if the container's author link points at *username*.

    Links are looked up inside the author-name block when there is one, so
    an ``@username`` mention in someone else's reply doesn't count.
    """
    scope = container.select_one(AUTHOR_NAME_SELECTOR) or container
    target = username.lower()
    for link in scope.select("a[href]"):
        href = link.attr("href")
        if href and _first_path_segment(href).lower() == target:
            return True
    return False


def find_thread_run(containers: list[DomNode], username: str) -> list[DomNode]:
    """Return the first run of two or more consecutive posts by *username*.

    Only consecutive containers count: ``[A, B, A]`` is not a thread, and
    for ``[A, A, B, A]`` the run is the two leading posts. An empty list
    means the page holds a single post.
    """
    run: list[DomNode] = []
    for container in containers:
        if is_authored_by(container, username):
            run.append(container)
            continue
        if len(run) >= 2:
            break
        run = []
    return run if len(run) >= 2 else []


def detect_thread(containers: list[DomNode], username: str) -> bool:
    return bool(find_thread_run(containers, username))


def extract_post(container: DomNode, fallback_author: str, now: datetime) -> Post:
    author_el = container.select_one(AUTHOR_NAME_SELECTOR)
    text_el = container.select_one(POST_TEXT_SELECTOR)
    time_el = container.select_one("time")

    author = author_el.text() if author_el is not None else ""
    posted_at = parse_timestamp(time_el.attr("datetime")) if time_el is not None else None

    return Post(
        author=author or fallback_author,
        text=text_el.text() if text_el is not None else "",
        images=_collect_images(container, media_only=True),
        posted_at=posted_at or now,
    )


def extract_post_or_thread(document: DomNode, username: str, now: datetime) -> Post | Thread:
    containers = document.select(POST_SELECTOR)
    run = find_thread_run(containers, username)

    if run:
        posts = tuple(extract_post(container, username, now) for container in run)
        first_time = run[0].select_one("time")
        first_stamp = parse_timestamp(first_time.attr("datetime")) if first_time is not None else None
        return Thread(author=username, posts=posts, captured_at=first_stamp or now)

    if not containers:
        raise ContentNotFoundError("Post content not found")
    return extract_post(containers[0], username, now)


def _find_author_link(scopes: list[DomNode]) -> str | None:
    for scope in scopes:
        for link in scope.select('a[href*="/"]'):
            href = link.attr("href") or ""
            if any(marker in href for marker in _PERMALINK_MARKERS):
                continue
            text = link.text()
            if text:
                return text
    return None


def extract_article(document: DomNode, now: datetime) -> Article:
    root = document.select_one(ARTICLE_SELECTOR)
    if root is None:
        raise ContentNotFoundError("Article content not found")

    title_el = root.select_one('[role="heading"]') or root.select_one("h1")
    title = title_el.text() if title_el is not None else ""
    author = _find_author_link([root, document])

    content = root.select_one(ARTICLE_CONTENT_SELECTOR) or root
    for selector in NON_CONTENT_SELECTORS:
        for node in content.select(selector):
            node.remove()

    return Article(
        title=title or "Untitled Article",
        author=author or "Unknown Author",
        body_html=content.inner_html(),
        images=_collect_images(content, media_only=False),
        captured_at=now,
    )


def extract_from_document(
    document: DomNode,
    classification: ClassificationResult,
    now: datetime,
) -> NormalizedContent:
    """Dispatch on the provisional type; posts get the thread check."""
    if classification.content_type is ContentType.ARTICLE:
        return extract_article(document, now)

    username = classification.username or ""
    if classification.needs_thread_check and username:
        return extract_post_or_thread(document, username, now)

    containers = document.select(POST_SELECTOR)
    if not containers:
        raise ContentNotFoundError("Post content not found")
    return extract_post(containers[0], username or "Unknown", now)


# --- browser-facing driver ---


class ContentExtractor:
    """Navigate, wait for content, snapshot, extract; always close the page."""

    def __init__(
        self,
        *,
        navigation_timeout: float = 30.0,
        content_timeout: float = 15.0,
        settle_delay: float = 2.0,
        wait_until: str = "networkidle",
        clock: Clock = _utcnow,
    ) -> None:
        self._navigation_timeout = navigation_timeout
        self._content_timeout = content_timeout
        self._settle_delay = settle_delay
        self._wait_until = wait_until
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> ContentExtractor:
        return cls(
            navigation_timeout=settings.navigation_timeout_seconds,
            content_timeout=settings.content_timeout_seconds,
            settle_delay=settings.settle_delay_seconds,
            wait_until=settings.navigation_wait_until,
        )

    async def extract(
        self,
        page: ExtractablePage,
        classification: ClassificationResult,
    ) -> NormalizedContent:
        url = classification.url
        state = ExtractionState.IDLE
        try:
            classification.raise_for_invalid()

            state = self._enter(url, ExtractionState.NAVIGATING)
            await self._navigate(page, url)

            state = self._enter(url, ExtractionState.WAITING_FOR_CONTENT)
            marker = (
                ARTICLE_SELECTOR
                if classification.content_type is ContentType.ARTICLE
                else POST_SELECTOR
            )
            if not await self._wait_for_marker(page, marker):
                logger.info(
                    "content marker absent, extracting best-effort",
                    extra={"url": url, "selector": marker},
                )
            if self._settle_delay > 0:
                await asyncio.sleep(self._settle_delay)

            state = self._enter(url, ExtractionState.EXTRACTING)
            document = await page.snapshot()
            content = extract_from_document(document, classification, self._clock())

            self._enter(url, ExtractionState.DONE)
            logger.info("content extracted", extra={"url": url, "kind": content.kind})
            return content
        except ConversionError as exc:
            exc.url = exc.url or url
            self._enter(url, ExtractionState.FAILED)
            logger.warning(
                "extraction failed",
                extra={"url": url, "failed_in": state.value, "code": exc.code, "reason": exc.message},
            )
            raise
        finally:
            await page.close()

    async def _navigate(self, page: ExtractablePage, url: str) -> None:
        try:
            await asyncio.wait_for(
                page.navigate(url, timeout=self._navigation_timeout, wait_until=self._wait_until),
                timeout=self._navigation_timeout + _WAIT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError as exc:
            raise NavigationTimeoutError(
                f"Page did not load within {self._navigation_timeout:g}s", url=url
            ) from exc

    async def _wait_for_marker(self, page: ExtractablePage, selector: str) -> bool:
        try:
            return await asyncio.wait_for(
                page.wait_for(selector, timeout=self._content_timeout),
                timeout=self._content_timeout + _WAIT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            return False

    @staticmethod
    def _enter(url: str, state: ExtractionState) -> ExtractionState:
        logger.debug("extraction state", extra={"url": url, "state": state.value})
        return state
