"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime

from pydantic import BaseModel

from claimscan.pipeline.models import DocumentSnapshot, DocumentStatus
from claimscan.recommendation.client import Claim, SchemeRecommendation


class EntityResponse(BaseModel):
    """Response schema for a single extracted entity."""

    type: str
    value: str
    confidence: float


class DocumentResponse(BaseModel):
    """Response schema for a document and its processing results."""

    id: str
    filename: str
    status: DocumentStatus
    extracted_text: str
    entities: list[EntityResponse]
    error_message: str | None = None
    submitted_at: datetime

    @classmethod
    def from_snapshot(cls, document: DocumentSnapshot) -> "DocumentResponse":
        return cls(
            id=document.id,
            filename=document.filename,
            status=document.status,
            extracted_text=document.extracted_text,
            entities=[
                EntityResponse(type=e.type.value, value=e.value, confidence=e.confidence)
                for e in document.entities
            ],
            error_message=document.error_message,
            submitted_at=document.submitted_at,
        )


class DocumentListResponse(BaseModel):
    """Response schema listing visible documents."""

    total: int
    documents: list[DocumentResponse]


class SubmissionResponse(BaseModel):
    """Response schema for a batch submission."""

    queued: list[DocumentResponse]
    rejected: list[str]


class ProgressResponse(BaseModel):
    """Response schema for batch progress."""

    progress: int
    is_running: bool
    pending: int


class RecommendationRequest(BaseModel):
    """Request schema for scheme recommendations.

    ``document_id`` pulls recognized text from a processed document when
    ``ocr_text`` is not given.
    """

    claim: Claim
    ocr_text: str | None = None
    document_id: str | None = None


class RecommendationsResponse(BaseModel):
    """Response schema for scheme recommendations."""

    recommendations: list[SchemeRecommendation]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
