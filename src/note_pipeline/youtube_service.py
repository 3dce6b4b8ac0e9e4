"""YouTube service for resolving video metadata and extracting captions."""

import re
from urllib.parse import parse_qs, urlparse

import httpx

from src.utils.clients import get_http_client
from src.utils.logging import get_logger

from .caption_parsers import (
    extract_page_metadata,
    locate_caption_tracks,
    parse_caption_payload,
    select_track,
)
from .config import NoteGeneratorConfig
from .errors import EmptyUpstreamResponseError, UpstreamUnavailableError
from .formatting import iso_duration_to_seconds, parse_iso_duration
from .metadata_fallback import derive_fallback
from .schemas import CaptionResult, FallbackMetadata, VideoInfo

logger = get_logger(__name__)

_VIDEO_ID = re.compile(r"[A-Za-z0-9_-]{11}")


def extract_video_id(value: str) -> str:
    """Extract the 11-character video id from an id or a YouTube URL.

    Args:
        value: Bare video id, watch/shorts/embed URL or youtu.be link.

    Returns:
        The video id.

    Raises:
        ValueError: If no video id can be found.

    Examples:
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ")
        "dQw4w9WgXcQ"
    """
    raw = value.strip()
    if _VIDEO_ID.fullmatch(raw):
        return raw

    if not raw.startswith(("http://", "https://")):
        raw = f"https://{raw}"

    parsed = urlparse(raw)
    host = parsed.netloc.lower()
    path_parts = [part for part in parsed.path.split("/") if part]

    if host.endswith("youtu.be") and path_parts and _VIDEO_ID.fullmatch(path_parts[0]):
        return path_parts[0]

    if "youtube.com" in host:
        query_id = parse_qs(parsed.query).get("v", [""])[0]
        if _VIDEO_ID.fullmatch(query_id):
            return query_id
        if len(path_parts) >= 2 and path_parts[0] in {"shorts", "embed", "live"}:
            if _VIDEO_ID.fullmatch(path_parts[1]):
                return path_parts[1]

    raise ValueError(f"Could not extract video ID from input: {value}")


class YouTubeService:
    """Service for YouTube metadata and caption retrieval.

    get_video_info resolves title, channel and duration through the YouTube
    Data API and raises on failure. extract_captions scrapes the watch page
    for caption tracks and never raises: when no transcript is recoverable
    it returns FallbackMetadata instead of segments.
    """

    def __init__(
        self,
        config: NoteGeneratorConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize YouTube service with configuration.

        Args:
            config: Configuration with endpoints, languages and timeouts.
            http_client: Shared client; one is created when omitted.
        """
        self.config = config
        self.client = http_client or get_http_client(config.request_timeout_seconds)
        logger.info(
            "youtube_service_initialized",
            caption_languages=config.caption_languages,
        )

    async def get_video_info(self, video_id: str, api_key: str) -> VideoInfo:
        """Fetch title, channel, duration and description for a video.

        Args:
            video_id: YouTube video ID.
            api_key: YouTube Data API key.

        Returns:
            VideoInfo with the duration rendered as H:MM:SS or M:SS.

        Raises:
            UpstreamUnavailableError: On transport failure or non-success status.
            EmptyUpstreamResponseError: If the API knows no such video.
        """
        logger.info("fetching_video_info", video_id=video_id)

        try:
            response = await self.client.get(
                f"{self.config.youtube_api_base_url}/videos",
                params={"part": "snippet,contentDetails", "id": video_id, "key": api_key},
            )
        except httpx.HTTPError as e:
            logger.warning(
                "video_info_request_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise UpstreamUnavailableError(f"YouTube Data API request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "video_info_bad_status",
                video_id=video_id,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise UpstreamUnavailableError(
                f"YouTube Data API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            items = response.json().get("items") or []
        except ValueError as e:
            raise EmptyUpstreamResponseError("YouTube Data API returned invalid JSON") from e

        if not items:
            raise EmptyUpstreamResponseError(f"Video not found: {video_id}")

        snippet = items[0].get("snippet", {})
        encoded_duration = items[0].get("contentDetails", {}).get("duration", "")

        video_info = VideoInfo(
            video_id=video_id,
            title=snippet.get("title", ""),
            channel_title=snippet.get("channelTitle", ""),
            duration=parse_iso_duration(encoded_duration),
            duration_seconds=iso_duration_to_seconds(encoded_duration),
            description=snippet.get("description", ""),
            published_at=snippet.get("publishedAt"),
        )

        logger.info(
            "video_info_fetched",
            video_id=video_id,
            duration=video_info.duration,
            channel=video_info.channel_title,
        )
        return video_info

    async def extract_captions(
        self, video_id: str, video_info: VideoInfo | None = None
    ) -> CaptionResult:
        """Extract timed caption segments, or fallback metadata when there are none.

        Args:
            video_id: YouTube video ID.
            video_info: Resolved metadata used to fill fields missing from the page.

        Returns:
            CaptionResult with segments, or with fallback_metadata and no segments.
        """
        logger.info("fetching_captions", video_id=video_id)

        html = ""
        try:
            html = await self._fetch_text(self.config.youtube_watch_url, {"v": video_id})
            tracks = locate_caption_tracks(html)
            track = select_track(tracks, self.config.caption_languages)

            if track is None or not track.base_url:
                logger.warning(
                    "caption_track_unavailable",
                    video_id=video_id,
                    tracks_found=len(tracks),
                )
                return self._no_captions(html, video_info)

            logger.info(
                "caption_track_selected",
                video_id=video_id,
                language=track.language_code,
                kind=track.kind or "manual",
            )
            payload = await self._fetch_text(track.base_url)
            segments = parse_caption_payload(payload)

        except UpstreamUnavailableError as e:
            logger.warning(
                "caption_fetch_failed",
                video_id=video_id,
                status_code=e.status_code,
                error=str(e),
            )
            return self._no_captions(html, video_info)

        if not segments:
            logger.warning("caption_segments_empty", video_id=video_id)
            return self._no_captions(html, video_info)

        logger.info(
            "captions_extracted",
            video_id=video_id,
            segments=len(segments),
            language=track.language_code,
        )
        return CaptionResult(segments=segments, language_code=track.language_code or None)

    async def _fetch_text(self, url: str, params: dict[str, str] | None = None) -> str:
        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Request to {url} failed: {e}") from e
        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"Request to {url} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    def _no_captions(self, html: str, video_info: VideoInfo | None) -> CaptionResult:
        return CaptionResult(fallback_metadata=self._fallback_metadata(html, video_info))

    def _fallback_metadata(
        self, html: str, video_info: VideoInfo | None
    ) -> FallbackMetadata:
        page = extract_page_metadata(html) if html else {}
        info = video_info or VideoInfo(video_id="")

        return derive_fallback(
            title=page.get("title") or info.title,
            description=page.get("description") or info.description,
            channel=page.get("channel") or info.channel_title,
            duration_seconds=page.get("duration_seconds") or info.duration_seconds,
            view_count=page.get("view_count", 0),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
