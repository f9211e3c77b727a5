"""Map conversion failures onto JSON error responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.schemas import ErrorResponse
from src.extraction.errors import ConversionError

logger = logging.getLogger(__name__)


async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    logger.warning(
        "request failed",
        extra={"path": request.url.path, "url": exc.url, "code": exc.code, "reason": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _is_missing_url(err: dict) -> bool:
    loc = tuple(err.get("loc", ()))
    if err.get("type") == "missing":
        return loc in (("body",), ("body", "url"))
    return err.get("type") == "string_too_short" and loc == ("body", "url")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = any(_is_missing_url(err) for err in exc.errors())
    message = "URL is required" if missing else "Invalid request body"
    body = ErrorResponse(error=message, code="invalid_request")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConversionError, conversion_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
