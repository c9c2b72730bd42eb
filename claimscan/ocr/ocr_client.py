"""Async client for an OCR.space-compatible recognition backend.

Sends one image per request as a multipart upload, reports fractional
progress while the request is in flight, and turns the JSON response
into plain text or one of the OCR error types.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from claimscan.utils.config import OCRConfig
from claimscan.utils.logger import get_logger

from .exceptions import OcrBackendError, OcrProtocolError, OcrTransportError
from .progress import OcrPhase, item_fraction

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]

_DEFAULT_ERROR_MESSAGE = "OCR error"


class _ParsedResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parsed_text: str | None = Field(default=None, alias="ParsedText")


class _OcrResponse(BaseModel):
    """Subset of the backend response schema the client relies on."""

    model_config = ConfigDict(populate_by_name=True)

    is_errored: bool = Field(default=False, alias="IsErroredOnProcessing")
    error_message: str | list[str] | None = Field(default=None, alias="ErrorMessage")
    parsed_results: list[_ParsedResult] | None = Field(
        default=None, alias="ParsedResults"
    )


class _ProgressReporter:
    """Forward phase changes to a callback without ever going backwards."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self.last = 0.0

    def report(self, phase: OcrPhase, fraction: float = 0.0) -> None:
        value = max(self.last, item_fraction(phase, fraction))
        self.last = value
        if self._callback is not None:
            self._callback(value)


def _join_errors(message: str | list[str] | None) -> str:
    if isinstance(message, list):
        return ", ".join(m for m in message if m) or _DEFAULT_ERROR_MESSAGE
    return message or _DEFAULT_ERROR_MESSAGE


class OcrClient:
    """Recognize text in document images through a hosted OCR API.

    Args:
        config: OCR backend configuration.
        http_client: Optional shared ``httpx.AsyncClient``. When omitted a
            client is opened and closed around each request.
    """

    def __init__(
        self, config: OCRConfig, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self.config = config
        self._http_client = http_client

    async def recognize(
        self,
        image: bytes,
        on_progress: ProgressCallback | None = None,
        filename: str = "image",
        content_type: str | None = None,
    ) -> str:
        """Run OCR on one image.

        Args:
            image: Raw image bytes.
            on_progress: Called with the request's completion in ``[0, 1]``.
            filename: Name sent with the multipart upload.
            content_type: MIME type of the image. Guessed from ``filename``
                when omitted.

        Returns:
            Recognized text of all regions, newline-joined and stripped.

        Raises:
            OcrTransportError: On connection failure or timeout.
            OcrBackendError: When the backend reports a processing error.
            OcrProtocolError: When the response does not match the schema.
        """
        reporter = _ProgressReporter(on_progress)
        reporter.report(OcrPhase.STARTED)
        try:
            response = await self._post(image, filename, content_type, reporter)
            text = self._parse(response)
        finally:
            reporter.report(OcrPhase.FINISHED)

        logger.info("OCR recognized %d characters from %s", len(text), filename)
        return text

    def _build_body(
        self, image: bytes, filename: str, content_type: str | None
    ) -> tuple[bytes, str]:
        """Encode the multipart form and return ``(body, content_type)``."""
        request = httpx.Request(
            "POST",
            self.config.api_url,
            data={
                "apikey": self.config.api_key,
                "language": self.config.language,
                "isOverlayRequired": "false",
                "scale": "true" if self.config.scale else "false",
                "OCREngine": str(self.config.engine),
            },
            files={"file": (filename, image, content_type)},
        )
        return request.read(), request.headers["Content-Type"]

    async def _upload(
        self, body: bytes, reporter: _ProgressReporter
    ) -> AsyncIterator[bytes]:
        total = len(body)
        chunk_size = self.config.upload_chunk_size
        sent = 0
        for start in range(0, total, chunk_size):
            chunk = body[start : start + chunk_size]
            yield chunk
            sent += len(chunk)
            reporter.report(OcrPhase.UPLOADING, sent / total)
        # Upload done; remote progress is not observable from here.
        reporter.report(OcrPhase.PROCESSING)

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient() as client:
            yield client

    async def _post(
        self,
        image: bytes,
        filename: str,
        content_type: str | None,
        reporter: _ProgressReporter,
    ) -> httpx.Response:
        body, multipart_type = self._build_body(image, filename, content_type)
        headers = {
            "Content-Type": multipart_type,
            "Content-Length": str(len(body)),
        }
        logger.debug("Uploading %s (%d bytes) for OCR", filename, len(body))

        async with self._client() as client:
            try:
                # httpx limits each connect/read/write step; this bounds the
                # whole request including a slow upload or trickled response.
                async with asyncio.timeout(self.config.timeout_seconds):
                    response = await client.post(
                        self.config.api_url,
                        content=self._upload(body, reporter),
                        headers=headers,
                        timeout=self.config.timeout_seconds,
                    )
            except (httpx.TimeoutException, TimeoutError) as exc:
                raise OcrTransportError("Request timed out") from exc
            except httpx.TransportError as exc:
                raise OcrTransportError(f"Network error: {exc}") from exc

        if not response.is_success:
            raise OcrBackendError(
                f"HTTP {response.status_code}: {response.reason_phrase}"
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response) -> str:
        try:
            payload = _OcrResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OcrProtocolError("Failed to parse OCR response") from exc

        if payload.is_errored:
            raise OcrBackendError(_join_errors(payload.error_message))
        if payload.parsed_results is None:
            raise OcrProtocolError("OCR response is missing ParsedResults")

        return "\n".join(
            result.parsed_text or "" for result in payload.parsed_results
        ).strip()
