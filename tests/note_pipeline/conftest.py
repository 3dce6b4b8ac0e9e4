"""Shared fixtures for note pipeline tests."""

import pytest

from src.note_pipeline.config import NoteGeneratorConfig
from tests.note_pipeline.fakes import FakeUpstream


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def note_config() -> NoteGeneratorConfig:
    return NoteGeneratorConfig(
        gemini_api_key="gemini-key",
        youtube_api_key="youtube-key",
        gemini_model="gemini-2.0-flash",
        gemini_base_url="https://generativelanguage.googleapis.com/v1beta",
        youtube_api_base_url="https://www.googleapis.com/youtube/v3",
        youtube_watch_url="https://www.youtube.com/watch",
        caption_languages=["ko"],
        max_retries=0,
        window_seconds=300,
        progress_timeout_seconds=1,
    )
