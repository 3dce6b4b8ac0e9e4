"""Run-scoped state and stage result containers.

NoteRunContext is created once per generate_note call and passed down the
stages explicitly. StageResult tags the output of a degrade-on-failure stage
so the orchestrator can tell real results from substituted ones without
catching exceptions at each call site.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from .schemas import Credentials, FallbackMetadata, VideoInfo

T = TypeVar("T")


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Value produced by a stage, plus the reason a fallback was used, if any.

    Attributes:
        value: Stage payload; always well-formed.
        fallback_reason: Error kind name when the payload is a fallback.
    """

    value: T
    fallback_reason: str | None = None

    @property
    def used_fallback(self) -> bool:
        return self.fallback_reason is not None


@dataclass
class NoteRunContext:
    """Cross-stage state for a single note generation run.

    Attributes:
        video_id: Video being processed.
        credentials: Keys used for this run's upstream calls.
        video_info: Resolved metadata, set by the first stage.
        fallback_metadata: Set at most once, when no transcript was recovered.
    """

    video_id: str
    credentials: Credentials
    video_info: VideoInfo | None = None
    fallback_metadata: FallbackMetadata | None = None

    def record_fallback(self, metadata: FallbackMetadata | None) -> None:
        """Store fallback metadata; later calls never replace the first value."""
        if metadata is not None and self.fallback_metadata is None:
            self.fallback_metadata = metadata
