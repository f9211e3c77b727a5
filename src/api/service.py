"""Service layer: orchestrates validation, extraction and PDF conversion for the API routes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from src.api.schemas import Classification, ValidateResponse
from src.extraction import (
    BrowserSessionManager,
    ContentExtractor,
    NormalizedContent,
    classify,
    fetch_content,
    normalize,
)
from src.render.pdf import PdfRenderer, RenderedPdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    pdf: RenderedPdf
    content_kind: str
    processing_ms: int


def validate_url(raw_url: str) -> ValidateResponse:
    """Normalize and classify *raw_url* without touching the browser."""
    normalized = normalize(raw_url)
    result = classify(normalized)
    return ValidateResponse(
        success=result.valid,
        normalized_url=normalized,
        classification=Classification.from_result(result),
    )


async def extract_content(
    raw_url: str,
    sessions: BrowserSessionManager,
    extractor: ContentExtractor,
) -> NormalizedContent:
    started = time.monotonic()
    content = await fetch_content(raw_url, sessions, extractor)
    logger.info(
        "extraction completed",
        extra={
            "url": raw_url,
            "kind": content.kind,
            "elapsed_ms": int((time.monotonic() - started) * 1000),
        },
    )
    return content


async def convert_to_pdf(
    raw_url: str,
    sessions: BrowserSessionManager,
    extractor: ContentExtractor,
    renderer: PdfRenderer,
) -> ConversionResult:
    """Extract *raw_url* and print it; errors propagate as ``ConversionError``."""
    started = time.monotonic()
    logger.info("conversion started", extra={"url": raw_url})

    content = await fetch_content(raw_url, sessions, extractor)
    pdf = await renderer.render(content, normalize(raw_url))

    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "conversion completed",
        extra={"url": raw_url, "kind": content.kind, "pdf_filename": pdf.filename, "elapsed_ms": elapsed_ms},
    )
    return ConversionResult(pdf=pdf, content_kind=content.kind, processing_ms=elapsed_ms)
