"""Command-line interface for generating a learning note from one video."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.utils.logging import get_logger

from .config import get_config
from .errors import NoteGenerationError
from .pipeline import NoteGenerationPipeline
from .schemas import Credentials, GeneratedNote, ProgressEvent
from .youtube_service import extract_video_id

logger = get_logger(__name__)


def print_progress(event: ProgressEvent) -> None:
    detail = f" ({event.detail})" if event.detail else ""
    print(f"[{event.percentage:3d}%] {event.label}{detail}")


def print_note(note: GeneratedNote) -> None:
    """Render a note as readable plain text."""
    print("\n" + "=" * 60)
    print(note.title)
    print("=" * 60)
    print(f"Channel: {note.channel_title}")
    print(f"Duration: {note.duration}")
    print(f"\n💡 {note.key_insight}\n")

    for section in note.sections:
        print("-" * 60)
        print(f"[{section.time_range}] {section.title}")
        print(f"\n{section.content}\n")
        if section.key_concepts:
            print("Key concepts:")
            for concept in section.key_concepts:
                print(f"  • {concept}")
        if section.action_points:
            print("Action points:")
            for action in section.action_points:
                print(f"  ✓ {action}")

    print("=" * 60)
    print(f"Processing time: {note.processing_time_ms} ms\n")


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point for note generation.

    Parses command-line arguments, runs the pipeline for one video and
    displays the resulting note.

    Returns:
        Process exit code.
    """
    parser = argparse.ArgumentParser(
        description="YouTube Note Generator - Turn a video into a structured learning note",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a note using API keys from .env
  python -m src.note_pipeline.cli dQw4w9WgXcQ

  # Pass a full URL and explicit keys
  python -m src.note_pipeline.cli "https://youtu.be/dQw4w9WgXcQ" \\
      --gemini-api-key AIza... --youtube-api-key AIza...

  # Use 3-minute sections and save the note as JSON
  python -m src.note_pipeline.cli dQw4w9WgXcQ --window-seconds 180 --output note.json
        """,
    )

    parser.add_argument("video", help="YouTube video ID or URL")
    parser.add_argument(
        "--gemini-api-key",
        type=str,
        help="Override GEMINI_API_KEY from environment",
    )
    parser.add_argument(
        "--youtube-api-key",
        type=str,
        help="Override YOUTUBE_API_KEY from environment",
    )
    parser.add_argument(
        "--window-seconds",
        type=int,
        help="Section window length in seconds",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the generated note as JSON to this path",
    )

    args = parser.parse_args(argv)

    try:
        video_id = extract_video_id(args.video)
    except ValueError as e:
        print(f"\n❌ {e}")
        return 2

    # Load configuration
    config = get_config()

    # Override config with CLI arguments
    if args.window_seconds:
        config.window_seconds = args.window_seconds

    credentials = Credentials(
        gemini_api_key=args.gemini_api_key or config.gemini_api_key,
        youtube_api_key=args.youtube_api_key or config.youtube_api_key,
    )

    logger.info("cli_started", video_id=video_id, window_seconds=config.window_seconds)

    print("\n" + "=" * 60)
    print("YouTube Note Generator")
    print("=" * 60)
    print(f"Video ID: {video_id}")
    print(f"Model: {config.gemini_model}")
    print(f"Section window: {config.window_seconds} s")
    print(f"Output language: {config.output_language}")
    print("=" * 60 + "\n")

    async with NoteGenerationPipeline(config) as pipeline:
        try:
            note = await pipeline.generate_note(video_id, credentials, print_progress)
        except NoteGenerationError as e:
            print(f"\n❌ {e.user_message}\n   {e}")
            return 1
        except Exception as e:
            logger.exception("cli_execution_failed", error_type=type(e).__name__)
            print(f"\n❌ Note generation failed: {str(e)}")
            return 1

    print_note(note)

    if args.output:
        args.output.write_text(
            json.dumps(note.model_dump(by_alias=True), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        print(f"✅ Note saved to {args.output}")

    logger.info(
        "cli_completed",
        video_id=video_id,
        sections=len(note.sections),
        processing_time_ms=note.processing_time_ms,
    )
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
