"""Segmentation service for grouping caption segments into time windows."""

import re

from src.utils.logging import get_logger

from .config import NoteGeneratorConfig
from .schemas import TimedTextSegment, TimeWindow

logger = get_logger(__name__)

_ANNOTATIONS = re.compile(r"\[.*?\]|\(.*?\)")
_WHITESPACE = re.compile(r"\s+")


class SegmentationService:
    """Service for cleaning caption segments and splitting them into windows.

    Windows are contiguous and non-overlapping: the first starts at 0, each
    boundary is the start of the first segment of the next window, and the
    last ends at the video duration.
    """

    def __init__(self, config: NoteGeneratorConfig):
        """Initialize segmentation service with configuration.

        Args:
            config: Configuration object holding the window length.
        """
        self.config = config
        logger.info("segmentation_service_initialized", window_seconds=config.window_seconds)

    def preprocess(self, segments: list[TimedTextSegment]) -> list[TimedTextSegment]:
        """Strip bracketed annotations such as [Music] or (laughs) and drop empty cues.

        Args:
            segments: Segments as parsed from the caption payload.

        Returns:
            Cleaned segments, order preserved.
        """
        cleaned: list[TimedTextSegment] = []
        for segment in segments:
            text = _WHITESPACE.sub(" ", _ANNOTATIONS.sub("", segment.text)).strip()
            if text:
                cleaned.append(segment.model_copy(update={"text": text}))

        logger.info(
            "segments_preprocessed",
            original_count=len(segments),
            cleaned_count=len(cleaned),
        )
        return cleaned

    def segment(
        self, segments: list[TimedTextSegment], total_duration_seconds: float
    ) -> list[TimeWindow]:
        """Group segments into windows of roughly window_seconds each.

        A new window opens when a segment starts more than window_seconds
        after the current window's start and the current window already
        holds segments.

        Args:
            segments: Segments in start-time order.
            total_duration_seconds: Video length; the last window ends here.

        Returns:
            Non-empty list of windows. Without segments a single window spans
            the whole video.
        """
        total = max(0.0, float(total_duration_seconds))

        if not segments:
            logger.info("segmentation_completed", windows=1, empty=True)
            return [TimeWindow(start_seconds=0.0, end_seconds=total)]

        windows: list[TimeWindow] = []
        current: list[TimedTextSegment] = []
        window_start = 0.0

        for segment in segments:
            if (
                segment.start_seconds - window_start > self.config.window_seconds
                and current
            ):
                windows.append(
                    TimeWindow(
                        start_seconds=window_start,
                        end_seconds=segment.start_seconds,
                        segments=current,
                    )
                )
                current = []
                window_start = segment.start_seconds

            current.append(segment)

        # Unknown or inconsistent duration: end at the last cue instead.
        end = total
        if total <= 0 or total < window_start:
            last = current[-1]
            end = max(window_start, last.start_seconds + last.duration_seconds)
        windows.append(
            TimeWindow(start_seconds=window_start, end_seconds=end, segments=current)
        )

        logger.info(
            "segmentation_completed",
            segments=len(segments),
            windows=len(windows),
            total_duration_seconds=total,
        )
        return windows
