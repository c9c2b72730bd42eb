"""Export processed documents to JSON and CSV."""

import csv
import json
from pathlib import Path

from claimscan.extraction.entity_extractor import EntityType
from claimscan.pipeline.models import DocumentSnapshot

_META_COLUMNS = ["id", "filename", "status", "submitted_at", "error_message"]


def document_to_dict(document: DocumentSnapshot) -> dict[str, object]:
    """Convert a document snapshot into a JSON-serializable dict."""
    return {
        "id": document.id,
        "filename": document.filename,
        "status": document.status.value,
        "submitted_at": document.submitted_at.isoformat(),
        "extracted_text": document.extracted_text,
        "entities": [
            {
                "type": entity.type.value,
                "value": entity.value,
                "confidence": entity.confidence,
            }
            for entity in document.entities
        ],
        "error_message": document.error_message,
    }


def export_json(documents: list[DocumentSnapshot], output_path: Path) -> None:
    """Write documents to a JSON array file.

    Args:
        documents: Documents to export.
        output_path: Destination file; parent directories are created.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps([document_to_dict(d) for d in documents], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def _csv_row(document: DocumentSnapshot) -> dict[str, object]:
    row: dict[str, object] = {
        "id": document.id,
        "filename": document.filename,
        "status": document.status.value,
        "submitted_at": document.submitted_at.isoformat(),
        "error_message": document.error_message,
    }
    for entity_type in EntityType:
        values = [e.value for e in document.entities if e.type is entity_type]
        if values:
            row[entity_type.value] = "; ".join(values)
    return row


def export_csv(documents: list[DocumentSnapshot], output_path: Path) -> None:
    """Write one CSV row per document with entity columns after the meta columns.

    Args:
        documents: Documents to export. Nothing is written when empty.
        output_path: Destination file; parent directories are created.
    """
    if not documents:
        return

    rows = [_csv_row(d) for d in documents]
    present = {key for row in rows for key in row}
    entity_columns = [t.value for t in EntityType if t.value in present]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_META_COLUMNS + entity_columns)
        writer.writeheader()
        writer.writerows(rows)
