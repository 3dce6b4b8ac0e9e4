"""Unit tests for key-point extraction."""

import pytest

from src.note_pipeline.config import NoteGeneratorConfig
from src.note_pipeline.key_point_service import (
    PLACEHOLDER_KEY_POINTS,
    PLACEHOLDER_TEXT,
    KeyPointService,
    position_label,
    position_percentage,
)
from src.note_pipeline.metadata_fallback import derive_fallback
from src.note_pipeline.schemas import TimedTextSegment, TimeWindow


def _window(texts: list[str], start: float = 0, end: float = 300) -> TimeWindow:
    return TimeWindow(
        start_seconds=start,
        end_seconds=end,
        segments=[
            TimedTextSegment(text=text, start_seconds=start + i) for i, text in enumerate(texts)
        ],
    )


@pytest.mark.unit
class TestPositionHelpers:
    """Test window position labels and percentages."""

    def test_position_label(self) -> None:
        assert position_label(0, 3) == "intro"
        assert position_label(1, 3) == "middle"
        assert position_label(2, 3) == "closing"
        assert position_label(0, 1) == "intro"

    def test_position_percentage(self) -> None:
        assert position_percentage(0, 2) == 50
        assert position_percentage(1, 2) == 100
        assert position_percentage(0, 3) == 33
        assert position_percentage(1, 3) == 67
        assert position_percentage(0, 8) == 13


@pytest.mark.unit
class TestKeyPointService:
    """Test suite for KeyPointService class."""

    @pytest.fixture
    def service(self) -> KeyPointService:
        """Create service with default bounds."""
        return KeyPointService(NoteGeneratorConfig(max_key_points=3))

    def test_transcript_key_points_respect_bounds(self, service: KeyPointService) -> None:
        window = _window(
            [
                "Short.",
                "Python lists keep their insertion order.",
                "Dictionaries map keys to values!",
                "x" * 250 + ".",
                "Tuples are immutable sequences?",
                "Sets remove duplicate members.",
            ]
        )

        section = service.extract(window, 0, 1)

        assert section.time_range == "0:00-5:00"
        assert section.key_points == [
            "Python lists keep their insertion order",
            "Dictionaries map keys to values",
            "Tuples are immutable sequences",
        ]
        for point in section.key_points:
            assert 10 < len(point) < 200
        assert section.cleaned_text.startswith("Short. Python lists")
        assert section.suggested_title is None

    def test_transcript_without_qualifying_sentences(self, service: KeyPointService) -> None:
        section = service.extract(_window(["Hi.", "Ok."]), 0, 1)

        assert section.key_points == []
        assert section.cleaned_text == "Hi. Ok"

    def test_metadata_fallback_first_of_two_windows(self, service: KeyPointService) -> None:
        """Test a caption-less AI video: first window is the intro at 50%."""
        metadata = derive_fallback(title="AI 활용법", description="프로그래밍 입문 과정")
        window = TimeWindow(start_seconds=0, end_seconds=300)

        section = service.extract(window, 0, 2, metadata)

        assert metadata.primary_topic == "AI/기술"
        assert section.key_points[0].startswith("[intro · 50%]")
        assert 1 <= len(section.key_points) <= 3
        for point in section.key_points:
            assert 10 < len(point) < 200
        assert section.suggested_title == "AI in practice: opening"
        assert "AI 활용법" in section.cleaned_text

    def test_metadata_fallback_closing_window(self, service: KeyPointService) -> None:
        metadata = derive_fallback(title="Cooking pasta", description="")
        window = TimeWindow(start_seconds=300, end_seconds=600)

        section = service.extract(window, 1, 2, metadata)

        assert section.key_points[0].startswith("[closing · 100%]")
        assert section.suggested_title == "Cooking pasta: wrap-up"

    def test_placeholder_without_transcript_or_metadata(
        self, service: KeyPointService
    ) -> None:
        section = service.extract(TimeWindow(start_seconds=0, end_seconds=0), 0, 1)

        assert section.raw_text == ""
        assert section.cleaned_text == PLACEHOLDER_TEXT
        assert section.key_points == list(PLACEHOLDER_KEY_POINTS)

    def test_max_key_points_is_configurable(self) -> None:
        service = KeyPointService(NoteGeneratorConfig(max_key_points=1))
        window = _window(["First long sentence here.", "Second long sentence here."])

        section = service.extract(window, 0, 1)

        assert section.key_points == ["First long sentence here"]
