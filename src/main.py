"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from src.api.errors import register_exception_handlers
from src.api.routes import router
from src.api.schemas import HealthResponse
from src.config import get_settings
from src.extraction import BrowserSessionManager, ContentExtractor
from src.logging_config import setup_logging
from src.render.pdf import PdfOptions, PdfRenderer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting converter service")

    # The browser itself launches lazily on the first request.
    sessions = BrowserSessionManager.from_settings(settings)

    app.state.settings = settings
    app.state.sessions = sessions
    app.state.extractor = ContentExtractor.from_settings(settings)
    app.state.renderer = PdfRenderer(sessions, options=PdfOptions(format=settings.pdf_format))

    logger.info(
        "converter service ready",
        extra={
            "navigation_timeout_seconds": settings.navigation_timeout_seconds,
            "content_timeout_seconds": settings.content_timeout_seconds,
            "settle_delay_seconds": settings.settle_delay_seconds,
            "api_key_required": bool(settings.api_key),
        },
    )

    yield

    logger.info("shutting down converter service")
    await sessions.close()


app = FastAPI(title="X Content to PDF Converter", lifespan=lifespan)
app.include_router(router)
register_exception_handlers(app)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(timestamp=datetime.now(timezone.utc))
