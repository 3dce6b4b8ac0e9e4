"""FastAPI application for the YouTube Note Generator.

Exposes video metadata lookup, caption extraction and a streaming note
generation endpoint that reports progress as newline-delimited JSON.
"""

import asyncio
import json
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from src.note_pipeline.config import get_config
from src.note_pipeline.errors import NoteGenerationError
from src.note_pipeline.pipeline import NoteGenerationPipeline
from src.note_pipeline.schemas import CamelModel, Credentials, ProgressEvent
from src.note_pipeline.youtube_service import extract_video_id
from src.utils.clients import get_http_client
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Check if we're in production
is_production = os.getenv("ENVIRONMENT") == "production"

if not is_production:
    # Development: prioritize .env file
    project_root = Path(__file__).resolve().parent.parent.parent
    dotenv_path = project_root / ".env"
    load_dotenv(dotenv_path, override=True)
else:
    # Production: use cloud platform env vars only
    load_dotenv()

# Global clients initialized in lifespan
http_client = None
pipeline: NoteGenerationPipeline | None = None


# ==============================================================================
# Lifespan Management
# ==============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifecycle manager for the FastAPI application.

    Handles initialization and cleanup of resources.
    """
    global http_client, pipeline

    logger.info("application_startup_started")

    try:
        config = get_config()
        http_client = get_http_client(config.request_timeout_seconds)
        pipeline = NoteGenerationPipeline(config, http_client)

        logger.info("application_startup_completed", clients=["http", "pipeline"])

    except Exception:
        logger.exception("application_startup_failed")
        raise

    yield  # Application runs here

    # Shutdown: Clean up resources
    logger.info("application_shutdown_started")

    if http_client:
        await http_client.aclose()

    logger.info("application_shutdown_completed")


# ==============================================================================
# FastAPI Application Setup
# ==============================================================================

app = FastAPI(
    title="YouTube Note Generator API",
    description="Turns YouTube videos into structured learning notes with streaming progress",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==============================================================================
# Request/Response Models
# ==============================================================================


class VideoRequest(CamelModel):
    """Request model for metadata and caption endpoints."""

    video_id: str = ""
    youtube_api_key: str = ""


class NoteRequest(CamelModel):
    """Request model for the note generation endpoint."""

    video_id: str = ""
    gemini_api_key: str = ""
    youtube_api_key: str = ""


# ==============================================================================
# Helper Functions
# ==============================================================================


def get_pipeline() -> NoteGenerationPipeline:
    if pipeline is None:
        logger.error("pipeline_not_initialized")
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


def resolve_video_id(value: str) -> str:
    """Turn a request's video id or URL into a bare id, or raise HTTP 400."""
    if not value.strip():
        raise HTTPException(status_code=400, detail="Missing required parameter: videoId")
    try:
        return extract_video_id(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def encode_line(data: dict[str, Any]) -> bytes:
    return json.dumps(data, ensure_ascii=False).encode("utf-8") + b"\n"


async def stream_error_response(error_message: str, details: str):
    """Create a streaming response for error messages.

    Args:
        error_message: The error message to display to the user.
        details: Diagnostic detail for the caller.

    Yields:
        A single encoded JSON chunk with the complete flag set.
    """
    yield encode_line({"error": error_message, "details": details, "complete": True})


# ==============================================================================
# API Endpoints
# ==============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        Health status and timestamp.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": {
            "http_client": http_client is not None,
            "pipeline": pipeline is not None,
        },
    }


@app.post("/api/video-info")
async def video_info_endpoint(request: VideoRequest):
    """Resolve title, channel and duration for a video.

    Returns:
        VideoInfo in camelCase.
    """
    video_id = resolve_video_id(request.video_id)
    active = get_pipeline()

    api_key = request.youtube_api_key or active.config.youtube_api_key
    if not api_key:
        raise HTTPException(
            status_code=400, detail="Missing required parameter: youtubeApiKey"
        )

    try:
        info = await active.youtube_service.get_video_info(video_id, api_key)
    except NoteGenerationError as e:
        logger.warning("video_info_request_failed", video_id=video_id, error=str(e))
        raise HTTPException(status_code=502, detail=e.user_message) from e

    return info.model_dump(by_alias=True, mode="json")


@app.post("/api/captions")
async def captions_endpoint(request: VideoRequest):
    """Extract caption segments, or fallback metadata when a video has none.

    Returns:
        Segments, fallback metadata and a hasTranscript flag.
    """
    video_id = resolve_video_id(request.video_id)
    result = await get_pipeline().youtube_service.extract_captions(video_id)

    fallback = result.fallback_metadata
    return {
        "videoId": video_id,
        "hasTranscript": result.has_transcript,
        "languageCode": result.language_code,
        "segments": [
            {
                "text": segment.text,
                "start": segment.start_seconds,
                "duration": segment.duration_seconds,
            }
            for segment in result.segments
        ],
        "fallbackMetadata": fallback.model_dump(mode="json") if fallback else None,
    }


async def stream_note(
    active: NoteGenerationPipeline, video_id: str, credentials: Credentials
) -> AsyncIterator[bytes]:
    """Relay progress events and the final note as NDJSON lines.

    The pipeline runs in its own task; when the consumer stops iterating
    (client disconnect), the task is cancelled.
    """
    queue: asyncio.Queue[bytes | None] = asyncio.Queue()

    async def on_progress(event: ProgressEvent) -> None:
        await queue.put(encode_line({"progress": event.model_dump()}))

    async def run() -> None:
        try:
            note = await active.generate_note(video_id, credentials, on_progress)
            await queue.put(
                encode_line({"note": note.model_dump(by_alias=True), "complete": True})
            )
        except NoteGenerationError as e:
            logger.warning("note_request_failed", video_id=video_id, error=str(e))
            await queue.put(
                encode_line({"error": e.user_message, "details": str(e), "complete": True})
            )
        except Exception as e:
            logger.exception("note_request_failed", video_id=video_id)
            await queue.put(
                encode_line(
                    {
                        "error": "An error occurred while generating the note.",
                        "details": str(e),
                        "complete": True,
                    }
                )
            )
        finally:
            await queue.put(None)

    task = asyncio.create_task(run())
    try:
        while True:
            chunk = await queue.get()
            if chunk is None:
                break
            yield chunk
        await task
    finally:
        if not task.done():
            logger.info("note_request_cancelled", video_id=video_id)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    logger.info("note_request_completed", video_id=video_id)


@app.post("/api/notes")
async def notes_endpoint(request: NoteRequest):
    """Note generation endpoint with streaming progress.

    Each progress event is sent as {"progress": {...}}; the final line is
    {"note": {...}, "complete": true}, or an error line on failure.

    Returns:
        StreamingResponse with NDJSON output.
    """
    logger.info("note_request_started", video_id=request.video_id)

    active = get_pipeline()

    try:
        video_id = extract_video_id(request.video_id) if request.video_id.strip() else ""
    except ValueError as e:
        return StreamingResponse(
            stream_error_response("Invalid video ID or URL.", str(e)),
            media_type="application/x-ndjson",
        )

    credentials = Credentials(
        gemini_api_key=request.gemini_api_key,
        youtube_api_key=request.youtube_api_key,
    )

    return StreamingResponse(
        stream_note(active, video_id, credentials), media_type="application/x-ndjson"
    )
