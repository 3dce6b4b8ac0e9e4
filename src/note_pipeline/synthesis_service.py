"""Second AI stage: merge section analyses into a whole note."""

from pydantic import ValidationError

from src.utils.logging import get_logger

from .config import NoteGeneratorConfig
from .context import StageResult
from .errors import MalformedOutputError, NoteGenerationError
from .gemini_client import GeminiClient, extract_json
from .prompts import build_note_prompt
from .schemas import (
    Credentials,
    NoteSection,
    SectionAnalysis,
    SynthesizedNote,
    VideoInfo,
)

logger = get_logger(__name__)


def fallback_insight(title: str) -> str:
    return f"You can gain useful information from {title or 'this video'}."


def analysis_to_section(analysis: SectionAnalysis) -> NoteSection:
    """Rename SectionAnalysis fields into the NoteSection shape."""
    return NoteSection(
        time_range=analysis.time_range,
        title=analysis.title,
        content=analysis.summary,
        key_concepts=list(analysis.concepts),
        action_points=list(analysis.actions),
    )


class NoteSynthesisService:
    """Service that aggregates all section analyses with one generation call.

    On any upstream or format failure the analyses are copied over
    field-by-field and a generic insight naming the video is used.
    """

    def __init__(self, config: NoteGeneratorConfig, gemini_client: GeminiClient):
        """Initialize the synthesis service.

        Args:
            config: Configuration with the output language.
            gemini_client: Client used for the generation call.
        """
        self.config = config
        self.gemini_client = gemini_client

    async def synthesize(
        self,
        analyses: list[SectionAnalysis],
        video_info: VideoInfo,
        credentials: Credentials,
    ) -> StageResult[SynthesizedNote]:
        """Produce the key insight and final sections.

        Args:
            analyses: Stage-1 results in section order.
            video_info: Resolved video metadata.
            credentials: Keys for the generation call.

        Returns:
            StageResult holding the synthesized note; fallback_reason is set
            when the structural merge was used.
        """
        logger.info("note_synthesis_started", sections=len(analyses))

        prompt = build_note_prompt(analyses, video_info, self.config.output_language)

        try:
            text = await self.gemini_client.generate(
                prompt, credentials.gemini_api_key, max_output_tokens=2048
            )
            note = self._parse(text, analyses)
        except NoteGenerationError as e:
            logger.warning(
                "note_synthesis_fallback",
                error_type=type(e).__name__,
                error=str(e),
            )
            return StageResult(
                value=self.fallback(analyses, video_info),
                fallback_reason=type(e).__name__,
            )

        logger.info("note_synthesis_completed", sections=len(note.sections))
        return StageResult(value=note)

    def _parse(self, text: str, analyses: list[SectionAnalysis]) -> SynthesizedNote:
        data = extract_json(text)
        try:
            note = SynthesizedNote.model_validate(data)
        except ValidationError as e:
            raise MalformedOutputError(f"Synthesized note has an invalid shape: {e}") from e

        if len(note.sections) != len(analyses):
            raise MalformedOutputError(
                f"Expected {len(analyses)} sections, got {len(note.sections)}"
            )
        return note

    def fallback(
        self, analyses: list[SectionAnalysis], video_info: VideoInfo
    ) -> SynthesizedNote:
        """Structural merge of the analyses without any aggregation."""
        return SynthesizedNote(
            key_insight=fallback_insight(video_info.title),
            sections=[analysis_to_section(analysis) for analysis in analyses],
        )
