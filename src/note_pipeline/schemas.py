"""Pydantic schemas for the note generation pipeline."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .formatting import format_time_range


class CamelModel(BaseModel):
    """Base for models exchanged in camelCase with upstream services and callers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimedTextSegment(BaseModel):
    """Single caption cue with timing.

    Produced only by the caption extractor, in source order. Times are in
    seconds as found in the timed-text payload.
    """

    text: str
    start_seconds: float = Field(ge=0)
    duration_seconds: float = 0.0


class CaptionTrack(CamelModel):
    """Caption track descriptor scraped from the watch page."""

    language_code: str = ""
    kind: str = ""
    base_url: str = ""
    name: str = ""
    vss_id: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _flatten_name(cls, value: Any) -> str:
        # The player response wraps labels as {"simpleText": ...} or {"runs": [...]}
        if isinstance(value, dict):
            if "simpleText" in value:
                return str(value["simpleText"])
            return "".join(str(run.get("text", "")) for run in value.get("runs", []))
        return "" if value is None else str(value)

    @property
    def is_auto_generated(self) -> bool:
        return self.kind == "asr" or ".asr" in self.vss_id


class FallbackMetadata(BaseModel):
    """Metadata-derived substitute data used when no transcript is available.

    Created at most once per run and frozen afterwards. Downstream stages
    read it to synthesise narrative content in place of a transcript.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    channel: str = ""
    duration: str = "0:00"
    duration_seconds: int = 0
    view_count: int = 0
    keywords: tuple[str, ...] = ()
    topics: tuple[str, ...] = ("general",)

    @property
    def primary_topic(self) -> str:
        return self.topics[0] if self.topics else "general"


class CaptionResult(BaseModel):
    """Outcome of caption extraction.

    Either segments are present, or fallback_metadata is set and segments is
    empty ("no captions" is an expected branch, not an error).
    """

    segments: list[TimedTextSegment] = Field(default_factory=list)
    fallback_metadata: FallbackMetadata | None = None
    language_code: str | None = None

    @property
    def has_transcript(self) -> bool:
        return bool(self.segments)


class VideoInfo(CamelModel):
    """Video metadata resolved from the YouTube Data API."""

    video_id: str
    title: str = ""
    channel_title: str = ""
    duration: str = "0:00"
    duration_seconds: int = 0
    description: str = ""
    published_at: datetime | None = None


class TimeWindow(BaseModel):
    """Contiguous span of the timeline used as the unit of summarisation."""

    start_seconds: float
    end_seconds: float
    segments: list[TimedTextSegment] = Field(default_factory=list)

    @property
    def time_range(self) -> str:
        return format_time_range(self.start_seconds, self.end_seconds)

    @property
    def text(self) -> str:
        return " ".join(segment.text for segment in self.segments).strip()


class ProcessedSection(CamelModel):
    """Window text reduced to cleaned prose and a handful of key points."""

    time_range: str
    raw_text: str
    cleaned_text: str
    key_points: list[str] = Field(default_factory=list)
    suggested_title: str | None = None


class SectionAnalysis(CamelModel):
    """Per-section result of the first AI stage."""

    time_range: str
    title: str
    summary: str
    concepts: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)


class NoteSection(CamelModel):
    """Final per-section shape exposed to the caller."""

    time_range: str
    title: str
    content: str
    key_concepts: list[str] = Field(default_factory=list)
    action_points: list[str] = Field(default_factory=list)


class SynthesizedNote(CamelModel):
    """Whole-note structure produced by the second AI stage."""

    key_insight: str
    sections: list[NoteSection] = Field(default_factory=list)


class GeneratedNote(CamelModel):
    """Final pipeline output. Never persisted.

    Serialise with model_dump(by_alias=True) to obtain the camelCase shape
    (title, channelTitle, duration, keyInsight, sections, processingTimeMs).
    """

    title: str
    channel_title: str
    duration: str
    key_insight: str
    sections: list[NoteSection] = Field(default_factory=list)
    processing_time_ms: int = 0


class ProgressEvent(BaseModel):
    """Discrete progress notification emitted at fixed pipeline milestones."""

    label: str
    percentage: int = Field(ge=0, le=100)
    detail: str | None = None


class Credentials(BaseModel):
    """Per-request API keys for the upstream services."""

    gemini_api_key: str = ""
    youtube_api_key: str = ""
