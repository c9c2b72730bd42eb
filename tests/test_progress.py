"""Tests for request-phase and batch progress math."""

import pytest

from claimscan.ocr.progress import OcrPhase, item_fraction, overall_progress


class TestItemFraction:
    """Tests for the two-phase request progress mapping."""

    def test_started_reports_activity(self) -> None:
        assert item_fraction(OcrPhase.STARTED) == pytest.approx(0.05)

    def test_upload_start_and_end(self) -> None:
        assert item_fraction(OcrPhase.UPLOADING, 0.0) == pytest.approx(0.05)
        assert item_fraction(OcrPhase.UPLOADING, 1.0) == pytest.approx(0.5)

    def test_upload_is_linear(self) -> None:
        assert item_fraction(OcrPhase.UPLOADING, 0.5) == pytest.approx(0.275)

    def test_upload_fraction_clamped(self) -> None:
        assert item_fraction(OcrPhase.UPLOADING, 3.0) == pytest.approx(0.5)
        assert item_fraction(OcrPhase.UPLOADING, -1.0) == pytest.approx(0.05)

    def test_processing_is_fixed_midpoint(self) -> None:
        assert item_fraction(OcrPhase.PROCESSING) == pytest.approx(0.8)
        assert item_fraction(OcrPhase.PROCESSING, 0.1) == pytest.approx(0.8)

    def test_finished(self) -> None:
        assert item_fraction(OcrPhase.FINISHED) == 1.0


class TestOverallProgress:
    """Tests for the batch-wide percentage."""

    def test_second_of_four_halfway(self) -> None:
        assert overall_progress(4, 1, 0.5) == 38

    def test_halves_round_up(self) -> None:
        assert overall_progress(4, 0, 0.5) == 13

    def test_batch_start(self) -> None:
        assert overall_progress(3, 0, 0.0) == 0

    def test_last_item_finished_is_100(self) -> None:
        assert overall_progress(1, 0, 1.0) == 100
        assert overall_progress(7, 6, 1.0) == 100

    @pytest.mark.parametrize(
        ("batch_size", "index", "fraction"),
        [(0, 0, 0.5), (2, 2, 0.0), (2, -1, 0.0), (2, 0, 1.5), (2, 0, -0.1)],
    )
    def test_invalid_arguments(
        self, batch_size: int, index: int, fraction: float
    ) -> None:
        with pytest.raises(ValueError):
            overall_progress(batch_size, index, fraction)

    @pytest.mark.parametrize("batch_size", [1, 2, 3, 5, 9])
    def test_in_order_walk_is_monotonic(self, batch_size: int) -> None:
        fractions = [
            item_fraction(OcrPhase.STARTED),
            item_fraction(OcrPhase.UPLOADING, 0.3),
            item_fraction(OcrPhase.UPLOADING, 1.0),
            item_fraction(OcrPhase.PROCESSING),
            item_fraction(OcrPhase.FINISHED),
        ]
        values = [
            overall_progress(batch_size, index, fraction)
            for index in range(batch_size)
            for fraction in fractions
        ]
        assert values == sorted(values)
        assert values[-1] == 100
