"""Key-point extraction for time windows."""

import re

from src.utils.logging import get_logger

from .config import NoteGeneratorConfig
from .schemas import FallbackMetadata, ProcessedSection, TimeWindow
from .templates import render_topic_narrative, truncate

logger = get_logger(__name__)

_SENTENCE_END = re.compile(r"[.!?]")

PLACEHOLDER_TEXT = "No transcript or metadata is available for this part of the video."
PLACEHOLDER_KEY_POINTS = (
    "The spoken content of this section could not be retrieved.",
    "Watch this part of the video directly to review its content.",
)
PLACEHOLDER_TITLE = "Video overview"


def position_label(index: int, total: int) -> str:
    """Label a window as "intro", "middle" or "closing" by its index."""
    if index == 0:
        return "intro"
    if index == total - 1:
        return "closing"
    return "middle"


def position_percentage(index: int, total: int) -> int:
    """Position of a window as (index + 1) / total, in percent, rounded half up."""
    return int((index + 1) / max(total, 1) * 100 + 0.5)


class KeyPointService:
    """Service for reducing a window to cleaned text and a few key points.

    Windows with transcript text are split into sentences. Windows without
    text are filled from the topic templates when fallback metadata exists,
    and from a fixed placeholder otherwise, so every window yields a section.
    """

    def __init__(self, config: NoteGeneratorConfig):
        """Initialize key-point service with configuration.

        Args:
            config: Configuration object with key-point count and length bounds.
        """
        self.config = config

    def _is_key_point(self, sentence: str) -> bool:
        return self.config.key_point_min_chars < len(sentence) < self.config.key_point_max_chars

    def extract(
        self,
        window: TimeWindow,
        index: int,
        total: int,
        fallback_metadata: FallbackMetadata | None = None,
    ) -> ProcessedSection:
        """Build the ProcessedSection for one window.

        Args:
            window: Window to process.
            index: Zero-based position of the window.
            total: Number of windows in the video.
            fallback_metadata: Present only when no transcript was recovered.

        Returns:
            ProcessedSection with at most max_key_points key points.
        """
        raw_text = window.text

        if raw_text:
            section = self._from_transcript(window.time_range, raw_text)
            source = "transcript"
        elif fallback_metadata is not None:
            section = self._from_metadata(window.time_range, index, total, fallback_metadata)
            source = "metadata"
        else:
            section = ProcessedSection(
                time_range=window.time_range,
                raw_text="",
                cleaned_text=PLACEHOLDER_TEXT,
                key_points=list(PLACEHOLDER_KEY_POINTS),
                suggested_title=PLACEHOLDER_TITLE,
            )
            source = "placeholder"

        logger.debug(
            "key_points_extracted",
            time_range=section.time_range,
            source=source,
            key_points=len(section.key_points),
        )
        return section

    def _from_transcript(self, time_range: str, raw_text: str) -> ProcessedSection:
        sentences = [s.strip() for s in _SENTENCE_END.split(raw_text) if s.strip()]
        key_points = [s for s in sentences if self._is_key_point(s)]

        return ProcessedSection(
            time_range=time_range,
            raw_text=raw_text,
            cleaned_text=". ".join(sentences),
            key_points=key_points[: self.config.max_key_points],
        )

    def _from_metadata(
        self,
        time_range: str,
        index: int,
        total: int,
        metadata: FallbackMetadata,
    ) -> ProcessedSection:
        label = position_label(index, total)
        percentage = position_percentage(index, total)
        narrative = render_topic_narrative(
            topic=metadata.primary_topic,
            title=metadata.title,
            description=metadata.description,
            position_label=label,
            position=percentage,
            excerpt_chars=self.config.description_excerpt_chars,
        )

        candidates = [f"[{label} · {percentage}%] {narrative.summary}", narrative.action]
        if metadata.keywords:
            candidates.append(f"Keywords: {', '.join(metadata.keywords)}")

        # Keep templated points inside the same bounds as transcript key points.
        limit = self.config.key_point_max_chars - 1
        key_points = [truncate(point, limit) for point in candidates]
        key_points = [point for point in key_points if self._is_key_point(point)]

        return ProcessedSection(
            time_range=time_range,
            raw_text=narrative.paragraph,
            cleaned_text=narrative.paragraph,
            key_points=key_points[: self.config.max_key_points],
            suggested_title=narrative.title,
        )
