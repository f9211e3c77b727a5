"""POST /validate, POST /extract, POST /convert endpoint handlers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from src.api.schemas import UrlRequest, ValidateResponse
from src.api.service import convert_to_pdf, extract_content, validate_url
from src.auth.dependencies import require_api_key
from src.extraction import BrowserSessionManager, ContentExtractor, NormalizedContent
from src.render.pdf import PdfRenderer

router = APIRouter(dependencies=[Depends(require_api_key)])


def _get_sessions(request: Request) -> BrowserSessionManager:
    return request.app.state.sessions


def _get_extractor(request: Request) -> ContentExtractor:
    return request.app.state.extractor


def _get_renderer(request: Request) -> PdfRenderer:
    return request.app.state.renderer


@router.post("/validate", response_model=ValidateResponse)
async def validate(body: UrlRequest):
    return validate_url(body.url)


@router.post("/extract", response_model=NormalizedContent)
async def extract(
    body: UrlRequest,
    sessions: BrowserSessionManager = Depends(_get_sessions),
    extractor: ContentExtractor = Depends(_get_extractor),
):
    return await extract_content(body.url, sessions, extractor)


@router.post("/convert")
async def convert(
    body: UrlRequest,
    sessions: BrowserSessionManager = Depends(_get_sessions),
    extractor: ContentExtractor = Depends(_get_extractor),
    renderer: PdfRenderer = Depends(_get_renderer),
):
    result = await convert_to_pdf(body.url, sessions, extractor, renderer)
    return Response(
        content=result.pdf.data,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{result.pdf.filename}"',
            "X-Processing-Time": str(result.processing_ms),
            "X-Content-Type": result.content_kind,
        },
    )
