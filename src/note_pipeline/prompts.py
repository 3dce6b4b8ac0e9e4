"""Prompt templates for the two AI summarisation stages."""

import json

from .schemas import ProcessedSection, SectionAnalysis, VideoInfo

# ==============================================================================
# Stage 1: per-section analysis
# ==============================================================================

SECTION_ANALYSIS_PROMPT = """Analyze the following video section and answer with a structured JSON object.

Section:
- Time range: {time_range}
- Transcript: {raw_text}
- Key points: {key_points}{title_hint}

Respond with JSON in exactly this shape:

{{
  "timeRange": "{time_range}",
  "title": "A clear title for this section",
  "summary": "The core content of this section in 2-3 sentences",
  "concepts": ["concept 1", "concept 2", "concept 3"],
  "actions": ["actionable step 1", "actionable step 2"]
}}

Requirements:
1. title describes the section content clearly
2. summary covers the core content in 2-3 sentences
3. concepts lists at most 3 important concepts or keywords
4. actions lists at most 2 concrete steps the viewer can apply
5. Write every value in {language}
6. Return valid JSON only
"""


def build_section_prompt(section: ProcessedSection, language: str) -> str:
    """Render the stage-1 instruction for one processed section."""
    title_hint = (
        f"\n- Suggested title: {section.suggested_title}" if section.suggested_title else ""
    )
    return SECTION_ANALYSIS_PROMPT.format(
        time_range=section.time_range,
        raw_text=section.raw_text or section.cleaned_text,
        key_points=", ".join(section.key_points) or "(none)",
        title_hint=title_hint,
        language=language,
    )


# ==============================================================================
# Stage 2: whole-note synthesis
# ==============================================================================

NOTE_SYNTHESIS_PROMPT = """Turn the following section analyses of a YouTube video into a structured learning note.

Video:
- Title: {title}
- Channel: {channel}
- Duration: {duration}

Section analyses (in order):
{sections}

Respond with JSON in exactly this shape:

{{
  "keyInsight": "The single most important takeaway of the video in one sentence",
  "sections": [
    {{
      "timeRange": "0:00-5:00",
      "title": "Section title",
      "content": "Detailed explanation of the section",
      "keyConcepts": ["concept 1", "concept 2", "concept 3"],
      "actionPoints": ["action 1", "action 2"]
    }}
  ]
}}

Requirements:
1. keyInsight captures the most important message of the whole video
2. sections contains exactly {count} entries, one per analysis, in the same order
3. Keep each timeRange exactly as given in its analysis
4. content expands the analysis summary and links it to the rest of the video
5. Write every value in {language}
6. Return valid JSON only
"""


def build_note_prompt(
    analyses: list[SectionAnalysis], video_info: VideoInfo, language: str
) -> str:
    """Render the stage-2 instruction for all section analyses."""
    sections = "\n".join(
        f"[Section {index}] "
        + json.dumps(analysis.model_dump(by_alias=True), ensure_ascii=False)
        for index, analysis in enumerate(analyses, start=1)
    )
    return NOTE_SYNTHESIS_PROMPT.format(
        title=video_info.title,
        channel=video_info.channel_title,
        duration=video_info.duration,
        sections=sections,
        count=len(analyses),
        language=language,
    )
