"""First AI stage: per-section analysis with a deterministic local fallback."""

from pydantic import ValidationError

from src.utils.logging import get_logger

from .config import NoteGeneratorConfig
from .context import StageResult
from .errors import MalformedOutputError, NoteGenerationError
from .gemini_client import GeminiClient, extract_json
from .prompts import build_section_prompt
from .schemas import Credentials, ProcessedSection, SectionAnalysis
from .templates import truncate

logger = get_logger(__name__)

MAX_CONCEPTS = 3
MAX_ACTIONS = 2
FALLBACK_CONCEPTS = ("Concept 1", "Concept 2")
FALLBACK_ACTIONS = ("Action 1", "Action 2")
UNANALYZED_SUMMARY = "The content of this section could not be analyzed."


class SectionAnalysisService:
    """Service that summarises one processed section via text generation.

    analyze never raises for upstream failures: any transport, empty,
    safety or format problem yields a SectionAnalysis built from the
    section's own key points and text, tagged with the failure kind.
    """

    def __init__(self, config: NoteGeneratorConfig, gemini_client: GeminiClient):
        """Initialize the analysis service.

        Args:
            config: Configuration with output language and fallback bounds.
            gemini_client: Client used for the generation call.
        """
        self.config = config
        self.gemini_client = gemini_client

    async def analyze(
        self, section: ProcessedSection, index: int, credentials: Credentials
    ) -> StageResult[SectionAnalysis]:
        """Analyze one section.

        Args:
            section: Section produced by the key-point service.
            index: Zero-based section position, used for fallback titles.
            credentials: Keys for the generation call.

        Returns:
            StageResult holding the analysis; fallback_reason is set when the
            local fallback was used.
        """
        logger.info(
            "section_analysis_started",
            section=index + 1,
            time_range=section.time_range,
            raw_text_length=len(section.raw_text),
            key_points=len(section.key_points),
        )

        prompt = build_section_prompt(section, self.config.output_language)

        try:
            text = await self.gemini_client.generate(
                prompt, credentials.gemini_api_key, max_output_tokens=1024
            )
            analysis = self._parse(text, section)
        except NoteGenerationError as e:
            logger.warning(
                "section_analysis_fallback",
                section=index + 1,
                error_type=type(e).__name__,
                error=str(e),
            )
            return StageResult(
                value=self.fallback(section, index),
                fallback_reason=type(e).__name__,
            )

        logger.info("section_analysis_completed", section=index + 1, title=analysis.title)
        return StageResult(value=analysis)

    def _parse(self, text: str, section: ProcessedSection) -> SectionAnalysis:
        data = extract_json(text)
        data["timeRange"] = section.time_range
        try:
            analysis = SectionAnalysis.model_validate(data)
        except ValidationError as e:
            raise MalformedOutputError(f"Section analysis has an invalid shape: {e}") from e

        return analysis.model_copy(
            update={
                "concepts": analysis.concepts[:MAX_CONCEPTS],
                "actions": analysis.actions[:MAX_ACTIONS],
            }
        )

    def fallback(self, section: ProcessedSection, index: int) -> SectionAnalysis:
        """Deterministic analysis built only from the section itself."""
        title = f"Section {index + 1}"
        if section.suggested_title:
            title = f"{title}: {section.suggested_title}"

        if section.key_points:
            summary = ". ".join(section.key_points)
        elif section.cleaned_text:
            summary = truncate(section.cleaned_text, self.config.summary_fallback_chars)
        else:
            summary = UNANALYZED_SUMMARY

        return SectionAnalysis(
            time_range=section.time_range,
            title=title,
            summary=summary,
            concepts=list(FALLBACK_CONCEPTS),
            actions=list(FALLBACK_ACTIONS),
        )
