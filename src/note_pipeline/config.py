"""Configuration module for the note generation pipeline."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class NoteGeneratorConfig(BaseModel):
    """Configuration for the note generation pipeline.

    Holds upstream endpoints, default credentials and the heuristic bounds
    used by segmentation, key-point extraction and validation. All settings
    can be overridden via environment variables or explicit arguments.
    """

    # Default credentials (requests may supply their own)
    gemini_api_key: str = Field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    youtube_api_key: str = Field(
        default_factory=lambda: os.getenv("YOUTUBE_API_KEY", "")
    )

    # Upstream services
    gemini_model: str = Field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    )
    gemini_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
    )
    youtube_api_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "YOUTUBE_API_BASE_URL", "https://www.googleapis.com/youtube/v3"
        )
    )
    youtube_watch_url: str = Field(
        default_factory=lambda: os.getenv(
            "YOUTUBE_WATCH_URL", "https://www.youtube.com/watch"
        )
    )
    output_language: str = Field(
        default_factory=lambda: os.getenv("NOTE_OUTPUT_LANGUAGE", "Korean")
    )
    caption_languages: list[str] = Field(
        default_factory=lambda: _split_csv(os.getenv("CAPTION_LANGUAGES", "ko,ko-KR"))
    )

    # Deadlines and retries
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    )
    progress_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("PROGRESS_TIMEOUT_SECONDS", "5"))
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("GEMINI_MAX_RETRIES", "1")),
        ge=0,
        validate_default=True,
    )

    # Heuristic bounds
    window_seconds: int = Field(
        default_factory=lambda: int(os.getenv("SECTION_WINDOW_SECONDS", "300"))
    )
    max_key_points: int = Field(
        default_factory=lambda: int(os.getenv("MAX_KEY_POINTS", "3"))
    )
    key_point_min_chars: int = Field(
        default_factory=lambda: int(os.getenv("KEY_POINT_MIN_CHARS", "10"))
    )
    key_point_max_chars: int = Field(
        default_factory=lambda: int(os.getenv("KEY_POINT_MAX_CHARS", "200"))
    )
    min_insight_chars: int = Field(
        default_factory=lambda: int(os.getenv("MIN_INSIGHT_CHARS", "10"))
    )
    summary_fallback_chars: int = Field(
        default_factory=lambda: int(os.getenv("SUMMARY_FALLBACK_CHARS", "200"))
    )
    description_excerpt_chars: int = Field(
        default_factory=lambda: int(os.getenv("DESCRIPTION_EXCERPT_CHARS", "100"))
    )


def get_config() -> NoteGeneratorConfig:
    """Get validated configuration instance.

    Returns:
        NoteGeneratorConfig: Validated configuration object with all settings.

    Raises:
        ValidationError: If an environment variable holds an invalid value.
    """
    return NoteGeneratorConfig()
