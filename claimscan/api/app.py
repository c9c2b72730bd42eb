"""FastAPI application for the claim document OCR service.

Provides REST endpoints for submitting image batches, reading document
status and results, batch progress, clearing the session, and scheme
recommendations.
"""

import asyncio
from functools import lru_cache
from typing import Annotated

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from claimscan.pipeline.document_pipeline import DocumentPipeline
from claimscan.pipeline.exceptions import PipelineBusyError
from claimscan.pipeline.models import DocumentSnapshot, ImageFile
from claimscan.recommendation.client import (
    RecommendationClient,
    recommend_with_fallback,
)
from claimscan.utils.config import AppConfig, load_config
from claimscan.utils.logger import get_logger

from .schemas import (
    DocumentListResponse,
    DocumentResponse,
    HealthResponse,
    ProgressResponse,
    RecommendationRequest,
    RecommendationsResponse,
    SubmissionResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Claim Document OCR API",
    description="Recognize scanned claim documents and extract labelled entities",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def _get_config() -> AppConfig:
    return load_config()


@lru_cache(maxsize=1)
def _get_pipeline() -> DocumentPipeline:
    """Return the session-wide document pipeline."""
    return DocumentPipeline.from_config(_get_config())


def _get_recommendation_client() -> RecommendationClient:
    return RecommendationClient(_get_config().recommendation)


async def _drain_pipeline(pipeline: DocumentPipeline, reset_delay: float) -> None:
    """Run batches until nothing is staged, then reset displayed progress."""
    if pipeline.is_running:
        # The active task picks these documents up when its batch ends.
        return
    while pipeline.pending:
        await pipeline.run()
    if reset_delay:
        await asyncio.sleep(reset_delay)
    if not pipeline.is_running:
        pipeline.reset_progress()


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(status="healthy", version=VERSION)


@app.post("/documents", response_model=SubmissionResponse, status_code=202)
async def submit_documents(
    files: Annotated[list[UploadFile], File(...)],
    background_tasks: BackgroundTasks,
) -> SubmissionResponse:
    """Queue uploaded images and process them in the background.

    Args:
        files: Uploaded image files (any ``image/*`` type).
        background_tasks: Runs the batch after the response is sent.

    Returns:
        The queued documents and the names of rejected files.
    """
    pipeline = _get_pipeline()

    queued: list[DocumentSnapshot] = []
    rejected: list[str] = []
    for upload in files:
        filename = upload.filename or "unknown"
        content_type = upload.content_type
        if content_type == "application/octet-stream":
            # Untyped upload; let the pipeline sniff the bytes.
            content_type = None
        if content_type and not content_type.startswith("image/"):
            rejected.append(filename)
            continue
        image = ImageFile(
            filename=filename,
            content=await upload.read(),
            content_type=content_type,
        )
        accepted = pipeline.submit([image])
        if accepted:
            queued.extend(accepted)
        else:
            rejected.append(filename)

    if not queued:
        raise HTTPException(status_code=400, detail="No image files to process")

    background_tasks.add_task(
        _drain_pipeline,
        pipeline,
        _get_config().pipeline.progress_reset_delay_seconds,
    )
    return SubmissionResponse(
        queued=[DocumentResponse.from_snapshot(d) for d in queued],
        rejected=rejected,
    )


@app.get("/documents", response_model=DocumentListResponse)
async def list_documents() -> DocumentListResponse:
    """List every document in the session, in submission order."""
    documents = _get_pipeline().documents
    return DocumentListResponse(
        total=len(documents),
        documents=[DocumentResponse.from_snapshot(d) for d in documents],
    )


@app.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str) -> DocumentResponse:
    """Return a single document by id."""
    document = _get_pipeline().get(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Unknown document: {document_id}")
    return DocumentResponse.from_snapshot(document)


@app.delete("/documents", status_code=204)
async def clear_documents() -> None:
    """Remove every document from the session."""
    try:
        _get_pipeline().clear()
    except PipelineBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.get("/progress", response_model=ProgressResponse)
async def get_progress() -> ProgressResponse:
    """Return batch progress for the current or last run."""
    pipeline = _get_pipeline()
    return ProgressResponse(
        progress=pipeline.progress,
        is_running=pipeline.is_running,
        pending=len(pipeline.pending),
    )


@app.post("/recommendations", response_model=RecommendationsResponse)
async def create_recommendations(
    request: RecommendationRequest,
) -> RecommendationsResponse:
    """Recommend welfare schemes for a claim.

    Falls back to a static recommendation set when the model call fails.
    """
    ocr_text = request.ocr_text
    if ocr_text is None and request.document_id is not None:
        document = _get_pipeline().get(request.document_id)
        if document is None:
            raise HTTPException(
                status_code=404, detail=f"Unknown document: {request.document_id}"
            )
        ocr_text = document.extracted_text or None

    recommendations = await recommend_with_fallback(
        _get_recommendation_client(), request.claim, ocr_text
    )
    return RecommendationsResponse(recommendations=recommendations)
