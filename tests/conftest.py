"""Shared test fixtures for the claim document test suite."""

import asyncio
import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from claimscan.utils.config import OCRConfig


class FakeOcrClient:
    """Scripted stand-in for ``OcrClient`` keyed by filename.

    Outcomes are either recognized text or an exception to raise. Tracks
    call order and how many requests were in flight at once.
    """

    def __init__(
        self,
        outcomes: dict[str, str | BaseException] | None = None,
        default: str = "",
        gate: asyncio.Event | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.default = default
        self.gate = gate
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def recognize(
        self,
        image: bytes,
        on_progress: Callable[[float], None] | None = None,
        filename: str = "image",
        content_type: str | None = None,
    ) -> str:
        self.calls.append(filename)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for fraction in (0.05, 0.5, 0.8):
                if on_progress:
                    on_progress(fraction)
                await asyncio.sleep(0)
            if self.gate is not None:
                await self.gate.wait()
            if on_progress:
                on_progress(1.0)
            outcome = self.outcomes.get(filename, self.default)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_ocr() -> type[FakeOcrClient]:
    """Return the scripted OCR client class."""
    return FakeOcrClient


@pytest.fixture
def png_bytes() -> bytes:
    """Create a small PNG image as bytes."""
    buf = io.BytesIO()
    Image.new("RGB", (60, 30), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def ocr_config() -> OCRConfig:
    """OCR configuration pointing at a fake backend with small upload chunks."""
    return OCRConfig(
        api_url="https://ocr.test/parse/image",
        api_key="test-key",
        upload_chunk_size=64,
    )


@pytest.fixture
def claim_text() -> str:
    """Recognized text of a typical claim form."""
    return (
        "FOREST RIGHTS CLAIM FORM\n"
        "Applicant Name: Ramesh Kumar\n"
        "Village: Khargone\n"
        "District: West Nimar\n"
        "State: Madhya Pradesh\n"
        "Area: 2.5 hectares\n"
        "Coordinates: 21.82 N, 75.61 E\n"
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
