"""Progress math for OCR requests and document batches.

An OCR request has two observable phases: uploading the image and
waiting for the remote result. ``item_fraction`` maps a phase to the
request's own completion in ``[0, 1]``. ``overall_progress`` folds that
into a batch-wide integer percentage.
"""

import math
from enum import StrEnum

STARTED_FRACTION = 0.05
UPLOAD_END_FRACTION = 0.5
PROCESSING_FRACTION = 0.8


class OcrPhase(StrEnum):
    """Observable phases of a single OCR request."""

    STARTED = "started"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    FINISHED = "finished"


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def item_fraction(phase: OcrPhase, fraction: float = 0.0) -> float:
    """Map a request phase to the request's overall completion.

    Args:
        phase: Current phase of the request.
        fraction: Completion within the phase. Only meaningful for
            ``UPLOADING``, where it is the share of bytes sent.

    Returns:
        Completion of the whole request in ``[0, 1]``.
    """
    if phase is OcrPhase.STARTED:
        return STARTED_FRACTION
    if phase is OcrPhase.UPLOADING:
        span = UPLOAD_END_FRACTION - STARTED_FRACTION
        return STARTED_FRACTION + span * _clamp(fraction)
    if phase is OcrPhase.PROCESSING:
        return PROCESSING_FRACTION
    return 1.0


def overall_progress(
    batch_size: int, current_index: int, item_fraction: float
) -> int:
    """Compute the batch-wide completion percentage.

    Args:
        batch_size: Number of documents in the batch.
        current_index: Zero-based position of the document in flight.
        item_fraction: Completion of that document in ``[0, 1]``.

    Returns:
        Integer percentage in ``[0, 100]``, halves rounded up.

    Raises:
        ValueError: If any argument is outside its valid range.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    if not 0 <= current_index < batch_size:
        raise ValueError(
            f"current_index {current_index} out of range for batch of {batch_size}"
        )
    if not 0.0 <= item_fraction <= 1.0:
        raise ValueError(f"item_fraction must be in [0, 1], got {item_fraction}")

    percent = (current_index + item_fraction) / batch_size * 100
    return int(_clamp(math.floor(percent + 0.5), 0, 100))
