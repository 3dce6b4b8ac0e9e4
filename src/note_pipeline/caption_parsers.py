"""Caption scraping and parsing strategies.

The watch page and the timed-text payload are uncontrolled upstream formats,
so both are handled by ordered lists of small independent strategies:

- track locators find the caption track list in the watch page HTML;
- caption parsers turn a timed-text payload into TimedTextSegment objects.

Each list is tried in order and the first strategy that produces something
wins. Strategies never raise on unexpected input; they return nothing.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from src.utils.logging import get_logger

from .schemas import CaptionTrack, TimedTextSegment

logger = get_logger(__name__)

HTML_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&nbsp;": " ",
}
_ENTITY_PATTERN = re.compile("|".join(re.escape(entity) for entity in HTML_ENTITIES))
_ESCAPED_NEWLINE = re.compile(r"\\n|\n")
_WHITESPACE = re.compile(r"\s+")


def decode_entities(text: str) -> str:
    """Decode the fixed entity table in a single left-to-right pass.

    Entities outside the table are left untouched.

    Examples:
        >>> decode_entities("A &amp;&lt; B")
        "A &< B"
    """
    return _ENTITY_PATTERN.sub(lambda match: HTML_ENTITIES[match.group(0)], text)


def clean_caption_text(text: str) -> str:
    """Decode entities, flatten newlines and collapse whitespace."""
    text = decode_entities(text)
    text = _ESCAPED_NEWLINE.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


# ==============================================================================
# Timed-text payload parsers
# ==============================================================================


class CaptionParser:
    """A single parse attempt over a timed-text payload.

    Subclasses provide `pattern` and, when the match groups differ from
    (start, dur, text), override `_cue`.
    """

    name = "base"
    pattern: re.Pattern[str]

    def matches(self, payload: str) -> list[re.Match[str]]:
        return list(self.pattern.finditer(payload))

    def _cue(self, match: re.Match[str]) -> tuple[str, str, str] | None:
        return match.group(1), match.group(2), match.group(3)

    def to_segments(self, matches: list[re.Match[str]]) -> list[TimedTextSegment]:
        segments: list[TimedTextSegment] = []
        for match in matches:
            cue = self._cue(match)
            if cue is None:
                continue
            start, duration, raw_text = cue
            try:
                start_seconds = float(start)
                duration_seconds = float(duration or 0)
            except ValueError:
                continue
            text = clean_caption_text(raw_text)
            if not text or start_seconds < 0:
                continue
            segments.append(
                TimedTextSegment(
                    text=text,
                    start_seconds=start_seconds,
                    duration_seconds=duration_seconds,
                )
            )
        return segments

    def parse(self, payload: str) -> list[TimedTextSegment]:
        return self.to_segments(self.matches(payload))


class StrictTextTagParser(CaptionParser):
    """`<text start="S" dur="D">content</text>` with plain inline text."""

    name = "strict"
    pattern = re.compile(r'<text start="([^"]*)" dur="([^"]*)"[^>]*>([^<]*)</text>')


class CdataTextTagParser(CaptionParser):
    """Same tag shape with the content wrapped in CDATA."""

    name = "cdata"
    pattern = re.compile(
        r'<text start="([^"]*)" dur="([^"]*)"[^>]*><!\[CDATA\[(.*?)\]\]></text>',
        re.DOTALL,
    )


class PermissiveTextTagParser(CaptionParser):
    """Any `<text ...>` element; attributes in any order, nested markup stripped."""

    name = "permissive"
    # Self-closing <text .../> cues carry no content and must not open an element.
    pattern = re.compile(r"<text\b((?:[^>/]|/(?!>))*)>([\s\S]*?)</text>")
    _attribute = re.compile(r'([\w:-]+)\s*=\s*"([^"]*)"')
    _markup = re.compile(r"<!\[CDATA\[|\]\]>|<[^>]+>")

    def _cue(self, match: re.Match[str]) -> tuple[str, str, str] | None:
        attributes = dict(self._attribute.findall(match.group(1)))
        if "start" not in attributes:
            return None
        text = self._markup.sub(" ", match.group(2))
        return attributes["start"], attributes.get("dur", "0"), text


DEFAULT_PARSERS: tuple[CaptionParser, ...] = (
    StrictTextTagParser(),
    CdataTextTagParser(),
    PermissiveTextTagParser(),
)


def parse_caption_payload(
    payload: str, parsers: tuple[CaptionParser, ...] = DEFAULT_PARSERS
) -> list[TimedTextSegment]:
    """Parse a timed-text payload with the first parser that matches anything.

    Later parsers are only tried when every earlier one found zero matches.

    Args:
        payload: Timed-text XML as returned by a caption track's baseUrl.
        parsers: Ordered parse strategies.

    Returns:
        Segments in source order; empty when no parser matched.
    """
    for parser in parsers:
        matches = parser.matches(payload)
        if matches:
            segments = parser.to_segments(matches)
            logger.info(
                "caption_payload_parsed",
                parser=parser.name,
                matches=len(matches),
                segments=len(segments),
            )
            return segments

    logger.info("caption_payload_unmatched", payload_length=len(payload))
    return []


# ==============================================================================
# Watch page scraping
# ==============================================================================

_JSON_DECODER = json.JSONDecoder()


def _decode_json_at(html: str, marker: re.Pattern[str]) -> Any:
    """Decode the JSON value starting right after `marker`, or None."""
    match = marker.search(html)
    if not match:
        return None
    try:
        value, _ = _JSON_DECODER.raw_decode(html, match.end())
    except json.JSONDecodeError:
        return None
    return value


class TrackLocator(ABC):
    """Finds the raw caption track list in the watch page."""

    name = "base"

    @abstractmethod
    def locate(self, html: str) -> list[dict[str, Any]]:
        """Return the raw track dicts, or an empty list when none are found."""


class PlayerResponseLocator(TrackLocator):
    """Reads captionTracks out of the ytInitialPlayerResponse JSON blob."""

    name = "player_response"
    marker = re.compile(r"ytInitialPlayerResponse\s*=\s*(?=\{)")

    def locate(self, html: str) -> list[dict[str, Any]]:
        player = _decode_json_at(html, self.marker)
        if not isinstance(player, dict):
            return []
        renderer = (player.get("captions") or {}).get("playerCaptionsTracklistRenderer")
        tracks = (renderer or {}).get("captionTracks")
        return tracks if isinstance(tracks, list) else []


class CaptionTracksMarkerLocator(TrackLocator):
    """Reads the first `"captionTracks": [...]` array anywhere in the page."""

    name = "caption_tracks_marker"
    marker = re.compile(r'"captionTracks"\s*:\s*(?=\[)')

    def locate(self, html: str) -> list[dict[str, Any]]:
        tracks = _decode_json_at(html, self.marker)
        return tracks if isinstance(tracks, list) else []


DEFAULT_LOCATORS: tuple[TrackLocator, ...] = (
    PlayerResponseLocator(),
    CaptionTracksMarkerLocator(),
)


def locate_caption_tracks(
    html: str, locators: tuple[TrackLocator, ...] = DEFAULT_LOCATORS
) -> list[CaptionTrack]:
    """Return the caption tracks found by the first locator that finds any."""
    for locator in locators:
        raw_tracks = locator.locate(html)
        tracks: list[CaptionTrack] = []
        for raw in raw_tracks:
            if not isinstance(raw, dict):
                continue
            try:
                tracks.append(CaptionTrack.model_validate(raw))
            except ValidationError:
                continue
        if tracks:
            logger.info("caption_tracks_located", locator=locator.name, count=len(tracks))
            return tracks
    return []


def select_track(
    tracks: list[CaptionTrack], languages: list[str] | tuple[str, ...] = ("ko", "ko-KR")
) -> CaptionTrack | None:
    """Pick the target-language track, else an auto-generated one, else the first."""
    if not tracks:
        return None
    for track in tracks:
        if track.language_code in languages:
            return track
    for track in tracks:
        if track.is_auto_generated:
            return track
    return tracks[0]


_TITLE = re.compile(r"<title[^>]*>([^<]*)</title>")
_JSON_STRING_FIELDS = {
    "description": re.compile(r'"shortDescription"\s*:\s*"((?:[^"\\]|\\.)*)"'),
    "channel": re.compile(r'"ownerChannelName"\s*:\s*"((?:[^"\\]|\\.)*)"'),
    "length_seconds": re.compile(r'"lengthSeconds"\s*:\s*"(\d+)"'),
    "view_count": re.compile(r'"viewCount"\s*:\s*"(\d+)"'),
}


def _json_unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value


def extract_page_metadata(html: str) -> dict[str, Any]:
    """Scrape title, description, channel, length and views from the watch page.

    Each field has its own marker; missing markers yield empty values.
    """
    title_match = _TITLE.search(html)
    title = decode_entities(title_match.group(1)) if title_match else ""
    title = title.replace(" - YouTube", "").strip()

    found: dict[str, str] = {}
    for field, pattern in _JSON_STRING_FIELDS.items():
        match = pattern.search(html)
        found[field] = match.group(1) if match else ""

    return {
        "title": title,
        "description": _json_unescape(found["description"]),
        "channel": _json_unescape(found["channel"]),
        "duration_seconds": int(found["length_seconds"] or 0),
        "view_count": int(found["view_count"] or 0),
    }
