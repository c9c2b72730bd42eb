"""Document state for the batch pipeline.

``Document`` is the mutable record the pipeline drives through its
status machine. Everything outside the pipeline sees ``DocumentSnapshot``,
a frozen copy taken at read time.
"""

import io
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from PIL import Image, UnidentifiedImageError

from claimscan.extraction.entity_extractor import Entity

from .exceptions import InvalidTransitionError


class DocumentStatus(StrEnum):
    """Processing status of a document."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.COMPLETED, DocumentStatus.ERROR)


_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.QUEUED: {DocumentStatus.PROCESSING},
    DocumentStatus.PROCESSING: {DocumentStatus.COMPLETED, DocumentStatus.ERROR},
    DocumentStatus.COMPLETED: set(),
    DocumentStatus.ERROR: set(),
}


@dataclass(frozen=True)
class ImageFile:
    """A raw image submitted for processing."""

    filename: str
    content: bytes
    content_type: str | None = None

    def detected_content_type(self) -> str | None:
        """Return the declared MIME type, or sniff it from the bytes.

        Returns:
            MIME type string, or ``None`` if the bytes are not a
            recognizable image.
        """
        if self.content_type:
            return self.content_type
        try:
            with Image.open(io.BytesIO(self.content)) as img:
                return Image.MIME.get(img.format or "")
        except (UnidentifiedImageError, OSError):
            return None

    @property
    def is_image(self) -> bool:
        content_type = self.detected_content_type()
        return bool(content_type) and content_type.startswith("image/")


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view of a document at one point in time."""

    id: str
    filename: str
    status: DocumentStatus
    extracted_text: str
    entities: tuple[Entity, ...]
    error_message: str | None
    submitted_at: datetime


def _new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """A submitted document and its processing results."""

    filename: str
    id: str = field(default_factory=_new_document_id)
    status: DocumentStatus = DocumentStatus.QUEUED
    extracted_text: str = ""
    entities: list[Entity] = field(default_factory=list)
    error_message: str | None = None
    submitted_at: datetime = field(default_factory=_utcnow)

    def _move_to(self, status: DocumentStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Document {self.id} cannot move from {self.status} to {status}"
            )
        self.status = status

    def start(self) -> None:
        self._move_to(DocumentStatus.PROCESSING)

    def complete(self, text: str, entities: list[Entity]) -> None:
        self._move_to(DocumentStatus.COMPLETED)
        self.extracted_text = text
        self.entities = list(entities)

    def fail(self, message: str) -> None:
        self._move_to(DocumentStatus.ERROR)
        self.error_message = message

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            id=self.id,
            filename=self.filename,
            status=self.status,
            extracted_text=self.extracted_text,
            entities=tuple(self.entities),
            error_message=self.error_message,
            submitted_at=self.submitted_at,
        )
