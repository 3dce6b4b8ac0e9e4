"""Unit tests for FastAPI application main endpoints.

The pipeline global is patched with a mock; upstream services are never
contacted.
"""

import asyncio
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.api.main import app, stream_note
from src.note_pipeline.config import NoteGeneratorConfig
from src.note_pipeline.errors import MissingParameterError, UpstreamUnavailableError
from src.note_pipeline.metadata_fallback import derive_fallback
from src.note_pipeline.schemas import (
    CaptionResult,
    Credentials,
    GeneratedNote,
    NoteSection,
    ProgressEvent,
    TimedTextSegment,
    VideoInfo,
)

VIDEO_ID = "dQw4w9WgXcQ"


def _note() -> GeneratedNote:
    return GeneratedNote(
        title="Learning Python",
        channel_title="Code Lab",
        duration="12:00",
        key_insight="Python collections make everyday code simpler.",
        sections=[
            NoteSection(
                time_range="0:00-12:00",
                title="Everything",
                content="All of it.",
                key_concepts=["list"],
                action_points=["practice"],
            )
        ],
        processing_time_ms=1234,
    )


@pytest.fixture
def mock_pipeline() -> MagicMock:
    pipeline = MagicMock()
    pipeline.config = NoteGeneratorConfig(gemini_api_key="", youtube_api_key="")
    pipeline.youtube_service.get_video_info = AsyncMock()
    pipeline.youtube_service.extract_captions = AsyncMock()
    pipeline.generate_note = AsyncMock()
    return pipeline


def _lines(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line]


@pytest.mark.unit
class TestHealthEndpoint:
    """Test /health endpoint."""

    def test_health_check_returns_healthy_status(self) -> None:
        """Test that health endpoint returns healthy status."""
        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_includes_timestamp(self) -> None:
        """Test that health endpoint includes valid timestamp."""
        client = TestClient(app)
        response = client.get("/health")

        timestamp = datetime.fromisoformat(response.json()["timestamp"].replace("Z", "+00:00"))
        assert isinstance(timestamp, datetime)

    def test_health_check_includes_services_status(self) -> None:
        """Test that health endpoint includes services status."""
        client = TestClient(app)
        services = client.get("/health").json()["services"]

        assert set(services) == {"http_client", "pipeline"}
        for service_name, status in services.items():
            assert isinstance(status, bool), f"{service_name} status should be boolean"


@pytest.mark.unit
class TestVideoInfoEndpoint:
    """Test /api/video-info endpoint."""

    def test_video_info(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.youtube_service.get_video_info.return_value = VideoInfo(
            video_id=VIDEO_ID,
            title="Learning Python",
            channel_title="Code Lab",
            duration="12:00",
            duration_seconds=720,
        )

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post(
                "/api/video-info",
                json={"videoId": f"https://youtu.be/{VIDEO_ID}", "youtubeApiKey": "yt"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["videoId"] == VIDEO_ID
        assert data["channelTitle"] == "Code Lab"
        assert data["durationSeconds"] == 720
        mock_pipeline.youtube_service.get_video_info.assert_awaited_once_with(VIDEO_ID, "yt")

    def test_missing_video_id(self, mock_pipeline: MagicMock) -> None:
        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/video-info", json={"youtubeApiKey": "yt"})

        assert response.status_code == 400

    def test_missing_api_key(self, mock_pipeline: MagicMock) -> None:
        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/video-info", json={"videoId": VIDEO_ID})

        assert response.status_code == 400
        assert "youtubeApiKey" in response.json()["detail"]

    def test_upstream_failure(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.youtube_service.get_video_info.side_effect = UpstreamUnavailableError(
            "down", status_code=503
        )

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post(
                "/api/video-info", json={"videoId": VIDEO_ID, "youtubeApiKey": "yt"}
            )

        assert response.status_code == 502

    def test_pipeline_not_initialized(self) -> None:
        with patch("src.api.main.pipeline", None):
            response = TestClient(app).post(
                "/api/video-info", json={"videoId": VIDEO_ID, "youtubeApiKey": "yt"}
            )

        assert response.status_code == 503


@pytest.mark.unit
class TestCaptionsEndpoint:
    """Test /api/captions endpoint."""

    def test_captions_with_transcript(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.youtube_service.extract_captions.return_value = CaptionResult(
            segments=[TimedTextSegment(text="Hello", start_seconds=1.5, duration_seconds=2)],
            language_code="ko",
        )

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/captions", json={"videoId": VIDEO_ID})

        data = response.json()
        assert data["hasTranscript"] is True
        assert data["segments"] == [{"text": "Hello", "start": 1.5, "duration": 2.0}]
        assert data["fallbackMetadata"] is None

    def test_captions_without_transcript(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.youtube_service.extract_captions.return_value = CaptionResult(
            fallback_metadata=derive_fallback(title="AI 활용법", description="")
        )

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/captions", json={"videoId": VIDEO_ID})

        data = response.json()
        assert data["hasTranscript"] is False
        assert data["segments"] == []
        assert data["fallbackMetadata"]["topics"][0] == "AI/기술"

    def test_missing_video_id(self, mock_pipeline: MagicMock) -> None:
        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/captions", json={})

        assert response.status_code == 400


@pytest.mark.unit
class TestNotesEndpoint:
    """Test the streaming /api/notes endpoint."""

    def test_streams_progress_then_note(self, mock_pipeline: MagicMock) -> None:
        async def generate_note(video_id, credentials, progress):
            await progress(ProgressEvent(label="Start", percentage=10))
            await progress(ProgressEvent(label="Done", percentage=100, detail="fast"))
            return _note()

        mock_pipeline.generate_note.side_effect = generate_note

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post(
                "/api/notes",
                json={"videoId": VIDEO_ID, "geminiApiKey": "g", "youtubeApiKey": "y"},
            )

        assert response.status_code == 200
        lines = _lines(response)
        assert lines[0] == {"progress": {"label": "Start", "percentage": 10, "detail": None}}
        assert lines[1]["progress"]["detail"] == "fast"
        assert lines[2]["complete"] is True
        assert lines[2]["note"]["keyInsight"] == "Python collections make everyday code simpler."
        assert lines[2]["note"]["processingTimeMs"] == 1234

        video_id, credentials, _ = mock_pipeline.generate_note.call_args.args
        assert video_id == VIDEO_ID
        assert credentials.gemini_api_key == "g"
        assert credentials.youtube_api_key == "y"

    def test_streams_error_line(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.generate_note.side_effect = MissingParameterError("gemini_api_key")

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/notes", json={"videoId": VIDEO_ID})

        lines = _lines(response)
        assert len(lines) == 1
        assert lines[0]["complete"] is True
        assert lines[0]["error"] == MissingParameterError.user_message
        assert "gemini_api_key" in lines[0]["details"]

    def test_unexpected_error_is_reported(self, mock_pipeline: MagicMock) -> None:
        mock_pipeline.generate_note.side_effect = RuntimeError("boom")

        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post("/api/notes", json={"videoId": VIDEO_ID})

        lines = _lines(response)
        assert lines[-1]["complete"] is True
        assert lines[-1]["details"] == "boom"

    def test_invalid_video_url(self, mock_pipeline: MagicMock) -> None:
        with patch("src.api.main.pipeline", mock_pipeline):
            response = TestClient(app).post(
                "/api/notes", json={"videoId": "https://example.com/nothing"}
            )

        lines = _lines(response)
        assert lines[0]["complete"] is True
        assert "error" in lines[0]
        mock_pipeline.generate_note.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_generation(self, mock_pipeline: MagicMock) -> None:
        """Test closing the stream early cancels the running pipeline task."""
        cancelled = asyncio.Event()

        async def generate_note(video_id, credentials, progress):
            await progress(ProgressEvent(label="Start", percentage=10))
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return _note()

        mock_pipeline.generate_note.side_effect = generate_note
        stream = stream_note(mock_pipeline, VIDEO_ID, Credentials())

        first = json.loads(await stream.__anext__())
        await stream.aclose()

        assert first["progress"]["percentage"] == 10
        assert cancelled.is_set()
