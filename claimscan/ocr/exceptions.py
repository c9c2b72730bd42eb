class OcrError(Exception):
    """Base exception for all OCR backend failures."""


class OcrTransportError(OcrError):
    """Raised when the request fails at the network layer or times out."""


class OcrBackendError(OcrError):
    """Raised when the OCR backend reports a processing error."""


class OcrProtocolError(OcrError):
    """Raised when the OCR response cannot be parsed as the expected schema."""
