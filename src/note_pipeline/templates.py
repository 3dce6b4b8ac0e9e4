"""Topic narrative templates used when a video has no recoverable transcript.

Each entry renders deterministic substitute prose from the video title, a
description excerpt and the window's position in the video. The output is
structurally complete, not a claim about what the video says.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TopicTemplate:
    paragraph: str
    summary: str
    title: str
    action: str


@dataclass(frozen=True)
class TopicNarrative:
    """Rendered template for one window."""

    paragraph: str
    summary: str
    title: str
    action: str


POSITION_PHRASES = {
    "intro": "opening",
    "middle": "main body",
    "closing": "wrap-up",
}

GENERIC_TEMPLATE = TopicTemplate(
    paragraph=(
        "This {position_phrase} part of \"{title}\" ({position}% through the video) "
        "covers {topic} material. {excerpt} The segment builds on the ideas "
        "introduced so far and prepares the viewer for what follows."
    ),
    summary="The {position_phrase} of \"{title}\" presents the core {topic} ideas.",
    title="{title}: {position_phrase}",
    action="Write down one idea from the {position_phrase} of \"{title}\" to revisit later.",
)

TOPIC_TEMPLATES: dict[str, TopicTemplate] = {
    "AI/기술": TopicTemplate(
        paragraph=(
            "In this {position_phrase} segment ({position}%), \"{title}\" looks at "
            "how AI tools are applied in practice. {excerpt} It explains the "
            "underlying technology and where it fits into everyday workflows."
        ),
        summary="How AI technology is put to work in \"{title}\" ({position_phrase}).",
        title="AI in practice: {position_phrase}",
        action="Try the AI workflow shown in \"{title}\" on one of your own tasks.",
    ),
    "투자/경제": TopicTemplate(
        paragraph=(
            "This {position_phrase} segment ({position}%) of \"{title}\" discusses "
            "markets and investment decisions. {excerpt} It walks through the "
            "reasoning behind the analysis and the risks involved."
        ),
        summary="Market and investment analysis from \"{title}\" ({position_phrase}).",
        title="Investment analysis: {position_phrase}",
        action="Check the figures discussed in \"{title}\" against a current data source.",
    ),
    "교육/학습": TopicTemplate(
        paragraph=(
            "The {position_phrase} of the lesson \"{title}\" ({position}%) introduces "
            "the concepts step by step. {excerpt} Each idea is connected to the "
            "previous one so that the material can be followed in order."
        ),
        summary="Lesson content from \"{title}\" ({position_phrase}), explained step by step.",
        title="Lesson notes: {position_phrase}",
        action="Summarise the {position_phrase} of \"{title}\" in your own words.",
    ),
    "개발/코딩": TopicTemplate(
        paragraph=(
            "This {position_phrase} segment ({position}%) of \"{title}\" focuses on "
            "writing and structuring code. {excerpt} It shows the implementation "
            "choices and how the pieces fit together."
        ),
        summary="Implementation walkthrough from \"{title}\" ({position_phrase}).",
        title="Implementation: {position_phrase}",
        action="Reproduce the code from the {position_phrase} of \"{title}\" in a scratch project.",
    ),
    "생산성/도구": TopicTemplate(
        paragraph=(
            "In the {position_phrase} segment ({position}%), \"{title}\" presents "
            "tools and habits for working more efficiently. {excerpt} It focuses "
            "on what to automate and what to simplify."
        ),
        summary="Productivity tools and techniques from \"{title}\" ({position_phrase}).",
        title="Productivity tools: {position_phrase}",
        action="Pick one tool from \"{title}\" and use it for a week.",
    ),
    "콘텐츠 제작": TopicTemplate(
        paragraph=(
            "This {position_phrase} segment ({position}%) of \"{title}\" covers the "
            "content creation process. {excerpt} It looks at planning, production "
            "and how the result reaches an audience."
        ),
        summary="Content creation process from \"{title}\" ({position_phrase}).",
        title="Content creation: {position_phrase}",
        action="Apply one production tip from \"{title}\" to your next piece of content.",
    ),
}


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters, ending with "..." when shortened."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)].rstrip() + "..."


def render_topic_narrative(
    topic: str,
    title: str,
    description: str,
    position_label: str,
    position: int,
    excerpt_chars: int = 100,
) -> TopicNarrative:
    """Render the template for `topic`, or the generic one for unknown topics.

    Args:
        topic: Topic label (e.g. "AI/기술").
        title: Video title.
        description: Video description; only an excerpt is used.
        position_label: "intro", "middle" or "closing".
        position: Window position as a rounded percentage.
        excerpt_chars: Maximum length of the description excerpt.

    Returns:
        TopicNarrative with paragraph, summary, title and action rendered.
    """
    template = TOPIC_TEMPLATES.get(topic, GENERIC_TEMPLATE)
    excerpt = truncate(description, excerpt_chars)
    values = {
        "topic": topic,
        "title": title or "this video",
        "excerpt": excerpt,
        "position_label": position_label,
        "position_phrase": POSITION_PHRASES.get(position_label, position_label),
        "position": position,
    }
    return TopicNarrative(
        paragraph=" ".join(template.paragraph.format(**values).split()),
        summary=template.summary.format(**values),
        title=template.title.format(**values),
        action=template.action.format(**values),
    )
