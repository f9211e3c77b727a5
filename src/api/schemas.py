"""Request/response Pydantic models."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.extraction.classifier import ClassificationResult, ContentType


class UrlRequest(BaseModel):
    url: str = Field(min_length=1)


class Classification(BaseModel):
    valid: bool
    content_type: ContentType
    username: str | None = None
    post_id: str | None = None
    needs_thread_check: bool = False
    error_reason: str | None = None
    error_code: str | None = None

    @classmethod
    def from_result(cls, result: ClassificationResult) -> "Classification":
        return cls(
            valid=result.valid,
            content_type=result.content_type,
            username=result.username,
            post_id=result.post_id,
            needs_thread_check=result.needs_thread_check,
            error_reason=result.error_reason,
            error_code=result.error_code,
        )


class ValidateResponse(BaseModel):
    success: bool
    normalized_url: str
    classification: Classification


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime
