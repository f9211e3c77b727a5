"""Print normalized content to PDF with the shared headless browser."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from playwright.async_api import Error as PlaywrightError

from src.extraction.errors import RenderError
from src.extraction.models import Article, NormalizedContent, Thread
from src.render.templates import build_environment

if TYPE_CHECKING:
    from src.extraction.session import BrowserSessionManager

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_TITLE_SLUG_LENGTH = 50


@dataclass(frozen=True)
class PdfOptions:
    format: str = "A4"
    margin_top: str = "20mm"
    margin_right: str = "15mm"
    margin_bottom: str = "20mm"
    margin_left: str = "15mm"
    print_background: bool = True


@dataclass(frozen=True)
class RenderedPdf:
    data: bytes
    filename: str


def _slug(value: str) -> str:
    return _SLUG_RE.sub("_", value).lower()


def build_filename(content: NormalizedContent, today: datetime) -> str:
    """``article_<title>_<date>.pdf``, ``thread_<author>_<n>_<date>.pdf`` or ``post_<author>_<date>.pdf``."""
    date = today.strftime("%Y-%m-%d")
    if isinstance(content, Article):
        return f"article_{_slug(content.title[:_TITLE_SLUG_LENGTH])}_{date}.pdf"
    if isinstance(content, Thread):
        return f"thread_{_slug(content.author)}_{content.post_count}_{date}.pdf"
    return f"post_{_slug(content.author)}_{date}.pdf"


class PdfRenderer:
    """Renders :data:`NormalizedContent` to PDF bytes.

    Text fields are escaped by the templates; only an article's
    ``body_html`` is inserted as markup.
    """

    def __init__(
        self,
        sessions: BrowserSessionManager,
        *,
        options: PdfOptions | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._sessions = sessions
        self._options = options or PdfOptions()
        self._clock = clock
        self._env = build_environment()

    def render_html(self, content: NormalizedContent, source_url: str) -> str:
        template = self._env.get_template(f"{content.kind}.html")
        return template.render(content=content, source_url=source_url)

    def _footer_html(self, source_url: str) -> str:
        return self._env.get_template("footer.html").render(source_url=source_url)

    async def render(self, content: NormalizedContent, source_url: str) -> RenderedPdf:
        html = self.render_html(content, source_url)
        opts = self._options

        async with self._sessions.page() as handle:
            try:
                await handle.page.set_content(html, wait_until="networkidle")
                data = await handle.page.pdf(
                    format=opts.format,
                    margin={
                        "top": opts.margin_top,
                        "right": opts.margin_right,
                        "bottom": opts.margin_bottom,
                        "left": opts.margin_left,
                    },
                    print_background=opts.print_background,
                    display_header_footer=True,
                    header_template="<div></div>",
                    footer_template=self._footer_html(source_url),
                )
            except PlaywrightError as exc:
                logger.warning("pdf generation failed", extra={"url": source_url, "error": exc.message})
                raise RenderError(f"PDF generation failed: {exc.message}", url=source_url) from exc

        filename = build_filename(content, self._clock())
        logger.info(
            "pdf generated",
            extra={"url": source_url, "kind": content.kind, "bytes": len(data), "pdf_filename": filename},
        )
        return RenderedPdf(data=data, filename=filename)
