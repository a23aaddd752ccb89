"""Live transcript parsing and the consumption cursor."""

import json
import logging
from typing import Literal

from pydantic import ValidationError

from .types import Segment, Transcript

LOG = logging.getLogger("meeting_agent.transcript")

CursorMode = Literal["time", "count"]


def parse_transcript(payload: str | None) -> Transcript | None:
    """Decode the JSON document served by the transcript resource.

    Args:
        payload: Raw resource text, ``{"segments": [...]}``.

    Returns:
        The parsed Transcript, or ``None`` when the payload is missing,
        truncated or does not match the expected shape.
    """
    if not payload:
        return None
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        LOG.warning("Skipping malformed transcript payload: %s", e)
        return None
    if not isinstance(raw, dict):
        LOG.warning("Skipping transcript payload of type %s", type(raw).__name__)
        return None
    try:
        return Transcript.model_validate(raw)
    except ValidationError as e:
        LOG.warning("Skipping invalid transcript payload: %s", e.error_count())
        return None


def format_segments(segments: list[Segment]) -> str:
    """Render segments as ``speaker: text`` lines."""
    return "\n".join(seg.format_line() for seg in segments)


class TranscriptCursor:
    """Tracks how much of the append-only transcript has been consumed.

    ``time`` mode remembers the largest ``end`` seen and emits segments
    ending after it; blank segments are ignored and do not move it, so a
    segment filled in later is still picked up. ``count`` mode remembers
    how many segments were seen and emits the non-blank part of the tail.
    """

    def __init__(self, mode: CursorMode = "time") -> None:
        if mode not in ("time", "count"):
            raise ValueError(f"Unknown cursor mode: {mode!r}")
        self.mode = mode
        self.last_end = 0.0
        self.seen = 0

    def advance(self, segments: list[Segment]) -> list[Segment]:
        if self.mode == "count":
            return self._advance_by_count(segments)
        return self._advance_by_time(segments)

    def _advance_by_time(self, segments: list[Segment]) -> list[Segment]:
        fresh = [
            seg for seg in segments if seg.end > self.last_end and seg.text.strip()
        ]
        if fresh:
            self.last_end = max(seg.end for seg in fresh)
        return fresh

    def _advance_by_count(self, segments: list[Segment]) -> list[Segment]:
        if len(segments) <= self.seen:
            return []
        fresh = segments[self.seen :]
        self.seen = len(segments)
        return [seg for seg in fresh if seg.text.strip()]
