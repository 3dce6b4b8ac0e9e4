"""Main pipeline orchestrator for YouTube learning-note generation."""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable

import httpx

from src.utils.clients import get_http_client
from src.utils.logging import get_logger

from .analysis_service import SectionAnalysisService
from .config import NoteGeneratorConfig, get_config
from .context import NoteRunContext
from .errors import MissingParameterError
from .gemini_client import GeminiClient
from .key_point_service import KeyPointService
from .metadata_fallback import derive_fallback
from .schemas import (
    Credentials,
    GeneratedNote,
    ProgressEvent,
    SectionAnalysis,
    SynthesizedNote,
    VideoInfo,
)
from .segmentation_service import SegmentationService
from .synthesis_service import NoteSynthesisService
from .validation import validate_note
from .youtube_service import YouTubeService

logger = get_logger(__name__)

ProgressSink = Callable[[ProgressEvent], Awaitable[None] | None]

# Stage key -> (label, percentage, detail)
MILESTONES: dict[str, tuple[str, int, str | None]] = {
    "resolve": ("📹 Collecting video information", 10, "YouTube Data API"),
    "captions": ("📝 Downloading captions", 20, "Caption track extraction"),
    "preprocess": ("🔧 Preprocessing captions", 30, "Removing noise and tidying sentences"),
    "segment": ("✂️ Splitting into sections", 40, "Grouping captions into time windows"),
    "key_points": ("🎯 Extracting key points", 50, "Finding the main points of each section"),
    "analysis": ("🤖 AI analysis, pass 1", 60, "Summarizing each section"),
    "synthesis": ("🧠 AI analysis, pass 2", 70, "Structuring the whole note"),
    "structure": ("📚 Structuring the note", 80, "Assembling the final note"),
    "validate": ("✅ Validating the note", 90, "Checking note completeness"),
    "done": ("🎉 Note ready", 100, None),
}


class NoteGenerationPipeline:
    """Orchestrates the note generation pipeline.

    Stages run strictly in order for a single video: metadata resolution,
    caption extraction, preprocessing, segmentation, key-point extraction,
    per-section analysis (sequential), whole-note synthesis, structuring and
    validation. Fallback metadata travels in the run context; every designed
    stage failure degrades content instead of aborting the run.
    """

    def __init__(
        self,
        config: NoteGeneratorConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize pipeline with all required services.

        Args:
            config: Configuration object. If None, loads from environment.
            http_client: Shared HTTP client. If None, the pipeline creates and
                owns one.
        """
        self.config = config or get_config()
        self._owns_client = http_client is None
        self.http_client = http_client or get_http_client(
            self.config.request_timeout_seconds
        )

        self.youtube_service = YouTubeService(self.config, self.http_client)
        self.segmentation_service = SegmentationService(self.config)
        self.key_point_service = KeyPointService(self.config)
        self.gemini_client = GeminiClient(self.config, self.http_client)
        self.analysis_service = SectionAnalysisService(self.config, self.gemini_client)
        self.synthesis_service = NoteSynthesisService(self.config, self.gemini_client)

        logger.info(
            "pipeline_initialized",
            model=self.config.gemini_model,
            window_seconds=self.config.window_seconds,
        )

    async def __aenter__(self) -> "NoteGenerationPipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if the pipeline created it."""
        if self._owns_client:
            await self.http_client.aclose()

    def _start_run(self, video_id: str, credentials: Credentials | None) -> NoteRunContext:
        credentials = credentials or Credentials()
        resolved = Credentials(
            gemini_api_key=credentials.gemini_api_key or self.config.gemini_api_key,
            youtube_api_key=credentials.youtube_api_key or self.config.youtube_api_key,
        )

        if not (video_id or "").strip():
            raise MissingParameterError("video_id")
        if not resolved.gemini_api_key:
            raise MissingParameterError("gemini_api_key")
        if not resolved.youtube_api_key:
            raise MissingParameterError("youtube_api_key")

        return NoteRunContext(video_id=video_id.strip(), credentials=resolved)

    async def generate_note(
        self,
        video_id: str,
        credentials: Credentials | None = None,
        progress: ProgressSink | None = None,
    ) -> GeneratedNote:
        """Generate a learning note for one video.

        This is the main entry point for the pipeline.

        Args:
            video_id: YouTube video ID.
            credentials: Per-request API keys; missing keys fall back to config.
            progress: Optional sink receiving ProgressEvent values. May be a
                plain function or a coroutine function.

        Returns:
            Validated GeneratedNote with processing time filled in.

        Raises:
            MissingParameterError: If the video id or an API key is missing.
            NoteGenerationError: If video metadata cannot be resolved.
            Exception: Any unanticipated failure, after logging.
        """
        started = time.perf_counter()

        try:
            context = self._start_run(video_id, credentials)
        except MissingParameterError as e:
            logger.error("note_generation_rejected", parameter=e.parameter)
            raise

        logger.info("pipeline_started", video_id=context.video_id)

        try:
            # 1. Resolve video metadata
            await self._report(progress, "resolve")
            context.video_info = await self.youtube_service.get_video_info(
                context.video_id, context.credentials.youtube_api_key
            )

            # 2. Extract captions; no transcript leaves fallback metadata in the context
            await self._report(progress, "captions")
            captions = await self.youtube_service.extract_captions(
                context.video_id, context.video_info
            )
            context.record_fallback(captions.fallback_metadata)

            # 3. Preprocess
            await self._report(progress, "preprocess")
            segments = self.segmentation_service.preprocess(captions.segments)
            if not segments and context.fallback_metadata is None:
                # Annotation-only tracks ([Music], (applause)) leave no transcript
                logger.warning(
                    "transcript_empty_after_preprocess",
                    video_id=context.video_id,
                    raw_segments=len(captions.segments),
                )
                info = context.video_info
                context.record_fallback(
                    derive_fallback(
                        title=info.title,
                        description=info.description,
                        channel=info.channel_title,
                        duration_seconds=info.duration_seconds,
                    )
                )

            # 4. Segment
            await self._report(progress, "segment")
            windows = self.segmentation_service.segment(
                segments, self._total_duration(context)
            )

            # 5. Key points
            await self._report(progress, "key_points")
            sections = [
                self.key_point_service.extract(
                    window, index, len(windows), context.fallback_metadata
                )
                for index, window in enumerate(windows)
            ]

            # 6. Stage 1: one analysis per section, strictly sequential
            await self._report(progress, "analysis")
            analyses: list[SectionAnalysis] = []
            fallbacks = 0
            for index, section in enumerate(sections):
                result = await self.analysis_service.analyze(
                    section, index, context.credentials
                )
                analyses.append(result.value)
                fallbacks += result.used_fallback
                await self._report(
                    progress,
                    "analysis",
                    detail=f"Section {index + 1}/{len(sections)} analyzed",
                )

            # 7. Stage 2: whole-note synthesis
            await self._report(progress, "synthesis")
            synthesis = await self.synthesis_service.synthesize(
                analyses, context.video_info, context.credentials
            )

            # 8. Structure
            await self._report(progress, "structure")
            note = self._structure(synthesis.value, context.video_info)

            # 9. Validate
            await self._report(progress, "validate")
            note = validate_note(note, self.config.min_insight_chars)

            processing_time_ms = int((time.perf_counter() - started) * 1000)
            note = note.model_copy(update={"processing_time_ms": processing_time_ms})

            await self._report(
                progress,
                "done",
                detail=f"Finished in {round(processing_time_ms / 1000)} s",
            )

            logger.info(
                "pipeline_completed",
                video_id=context.video_id,
                has_transcript=captions.has_transcript,
                sections=len(note.sections),
                analysis_fallbacks=fallbacks,
                synthesis_fallback=synthesis.used_fallback,
                processing_time_ms=processing_time_ms,
            )
            return note

        except Exception as e:
            logger.exception(
                "note_generation_failed",
                video_id=context.video_id,
                error_type=type(e).__name__,
            )
            raise

    def _total_duration(self, context: NoteRunContext) -> int:
        if context.video_info and context.video_info.duration_seconds:
            return context.video_info.duration_seconds
        if context.fallback_metadata:
            return context.fallback_metadata.duration_seconds
        return 0

    @staticmethod
    def _structure(synthesis: SynthesizedNote, video_info: VideoInfo) -> GeneratedNote:
        return GeneratedNote(
            title=video_info.title,
            channel_title=video_info.channel_title or "Unknown",
            duration=video_info.duration or "0:00",
            key_insight=synthesis.key_insight,
            sections=synthesis.sections,
        )

    async def _report(
        self, progress: ProgressSink | None, stage: str, detail: str | None = None
    ) -> None:
        label, percentage, default_detail = MILESTONES[stage]
        event = ProgressEvent(label=label, percentage=percentage, detail=detail or default_detail)
        logger.debug("progress", stage=stage, percentage=percentage, detail=event.detail)

        if progress is None:
            return

        result = progress(event)
        if inspect.isawaitable(result):
            try:
                await asyncio.wait_for(result, timeout=self.config.progress_timeout_seconds)
            except TimeoutError:
                logger.warning(
                    "progress_sink_timeout",
                    stage=stage,
                    timeout_seconds=self.config.progress_timeout_seconds,
                )
