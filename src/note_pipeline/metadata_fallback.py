"""Keyword and topic estimation from video title/description.

Used when no caption track can be recovered: the page metadata is reduced
to a keyword set and an ordered topic list, and the first topic drives the
narrative templates in templates.py.
"""

import re

from src.utils.logging import get_logger

from .formatting import format_duration
from .schemas import FallbackMetadata

logger = get_logger(__name__)

DEFAULT_TOPIC = "general"
MAX_KEYWORDS = 10
MAX_EMOJI_KEYWORDS = 3

TECH_KEYWORDS = (
    "ai",
    "claude",
    "gpt",
    "mcp",
    "인공지능",
    "개발",
    "프로그래밍",
    "코딩",
    "투자",
    "분석",
    "자동화",
)
EDUCATION_KEYWORDS = ("강의", "튜토리얼", "배우기", "학습", "공부", "강좌", "교육")
ACTION_KEYWORDS = ("만들기", "구현", "생성", "활용", "방법", "실습", "실전")

# Insertion order matters: the first matching topic is the primary topic.
TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "AI/기술": ("ai", "claude", "gpt", "mcp", "인공지능", "자동화", "프로그래밍"),
    "투자/경제": ("투자", "주식", "경제", "분석", "리포트", "시장"),
    "교육/학습": ("강의", "튜토리얼", "배우기", "학습", "공부", "교육"),
    "개발/코딩": ("개발", "코딩", "프로그래밍", "구현", "코드"),
    "생산성/도구": ("자동화", "효율", "생산성", "도구", "활용"),
    "콘텐츠 제작": ("영상", "제작", "콘텐츠", "크리에이터"),
}

_EMOJI = re.compile(
    "[\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF]"
)


def _haystack(title: str, description: str) -> str:
    return f"{title} {description}".casefold()


def extract_keywords(title: str, description: str) -> list[str]:
    """Collect known keywords and title emoji, capped at MAX_KEYWORDS.

    Args:
        title: Video title.
        description: Video description.

    Returns:
        Matching keywords in family order (technology, education, action),
        followed by up to three emoji found in the title.

    Examples:
        >>> extract_keywords("GPT 활용법 🚀", "")
        ["gpt", "활용", "🚀"]
    """
    text = _haystack(title, description)
    keywords = [
        keyword
        for keyword in (*TECH_KEYWORDS, *EDUCATION_KEYWORDS, *ACTION_KEYWORDS)
        if keyword in text
    ]
    keywords.extend(_EMOJI.findall(title)[:MAX_EMOJI_KEYWORDS])
    return keywords[:MAX_KEYWORDS]


def estimate_topics(title: str, description: str) -> list[str]:
    """Return every topic whose keywords occur in the text, in map order.

    Falls back to [DEFAULT_TOPIC] when nothing matches.
    """
    text = _haystack(title, description)
    topics = [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in text for keyword in keywords)
    ]
    return topics or [DEFAULT_TOPIC]


def derive_fallback(
    title: str,
    description: str,
    channel: str = "",
    duration_seconds: int = 0,
    view_count: int = 0,
) -> FallbackMetadata:
    """Build the frozen FallbackMetadata for a video without a usable transcript.

    Args:
        title: Video title.
        description: Video description.
        channel: Channel name, when known.
        duration_seconds: Video length, when known.
        view_count: View count scraped from the page, when known.

    Returns:
        FallbackMetadata with keywords and topics derived from title/description.
    """
    metadata = FallbackMetadata(
        title=title,
        description=description,
        channel=channel,
        duration=format_duration(duration_seconds),
        duration_seconds=duration_seconds,
        view_count=view_count,
        keywords=tuple(extract_keywords(title, description)),
        topics=tuple(estimate_topics(title, description)),
    )

    logger.info(
        "fallback_metadata_derived",
        keywords=len(metadata.keywords),
        topics=list(metadata.topics),
        primary_topic=metadata.primary_topic,
    )
    return metadata
