"""Caption grouping, lookup and cue-list export."""

import logging
import re
from collections.abc import Iterable, Mapping

from courseplay.models import CaptionChunk, CaptionSegment

logger = logging.getLogger(__name__)

MAX_WORDS = 6
SENTENCE_MIN_WORDS = 4

_TERMINAL = re.compile(r"[.!?]$")
_PUNCT_ONLY = re.compile(r"^[^\w\s]+$")


def _bounds(chunk: CaptionChunk | Mapping) -> tuple[float, float] | None:
    """Return (start, end) for a well-formed chunk, else None."""
    timestamp = chunk.get("timestamp") if isinstance(chunk, Mapping) else chunk.timestamp
    if not isinstance(timestamp, (list, tuple)) or len(timestamp) < 2:
        return None
    start, end = timestamp[0], timestamp[1]
    if start is None or end is None:
        return None
    try:
        return float(start), float(end)
    except (TypeError, ValueError):
        return None


def _text(chunk: CaptionChunk | Mapping) -> str:
    text = chunk.get("text") if isinstance(chunk, Mapping) else chunk.text
    return (text or "").strip()


def group_segments(chunks: Iterable[CaptionChunk | Mapping]) -> list[CaptionSegment]:
    """Group word-level chunks into display segments.

    A segment closes at 6 words, or at 4 words when the last word ends
    with '.', '!' or '?'. A punctuation-only token ('.', '?!') is glued
    onto the previous word without a space and does not count as a word,
    so it can only end a segment once attached to one. Chunks with a
    missing or malformed timestamp are skipped.
    """
    segments: list[CaptionSegment] = []
    words: list[str] = []
    start: float | None = None
    end: float | None = None

    for chunk in chunks:
        bounds = _bounds(chunk)
        text = _text(chunk)
        if bounds is None or not text:
            continue

        if start is None:
            start = bounds[0]
        end = bounds[1]

        if _PUNCT_ONLY.match(text) and words:
            words[-1] += text
        elif _PUNCT_ONLY.match(text):
            # Leading punctuation opens the segment without counting as a word
            words.append(text)
            continue
        else:
            words.append(text)

        word_count = sum(1 for w in words if not _PUNCT_ONLY.match(w))
        if word_count >= MAX_WORDS or (
            word_count >= SENTENCE_MIN_WORDS and _TERMINAL.search(words[-1])
        ):
            segments.append(CaptionSegment(text=" ".join(words), start=start, end=end))
            words, start, end = [], None, None

    if words and start is not None:
        segments.append(CaptionSegment(text=" ".join(words), start=start, end=end))

    return segments


def active_segment(segments: list[CaptionSegment], t: float) -> CaptionSegment | None:
    """Return the first segment with start <= t <= end, if any."""
    return next((seg for seg in segments if seg.start <= t <= seg.end), None)


def format_timestamp(seconds: float, *, separator: str = ".") -> str:
    """Format seconds as HH:MM:SS.mmm (or HH:MM:SS,mmm for SubRip)."""
    total_ms = max(0, round(seconds * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{ms:03d}"


def to_vtt(segments: list[CaptionSegment]) -> str:
    """Serialize segments as a WebVTT document with numbered cues."""
    lines = ["WEBVTT", ""]
    for i, seg in enumerate(segments, 1):
        lines.append(str(i))
        lines.append(f"{format_timestamp(seg.start)} --> {format_timestamp(seg.end)}")
        lines.append(seg.text)
        lines.append("")
    return "\n".join(lines)


def to_srt(segments: list[CaptionSegment]) -> str:
    """Serialize segments as SubRip."""
    lines = []
    for i, seg in enumerate(segments, 1):
        start = format_timestamp(seg.start, separator=",")
        end = format_timestamp(seg.end, separator=",")
        lines.extend([str(i), f"{start} --> {end}", seg.text, ""])
    return "\n".join(lines)


class CaptionSynchronizer:
    """Keeps the segments for one video and answers 'what is on screen now'.

    Segments are rebuilt from scratch whenever the chunk list changes.
    """

    def __init__(self, chunks: Iterable[CaptionChunk | Mapping] = ()) -> None:
        self._segments: list[CaptionSegment] = []
        self.load(chunks)

    def load(self, chunks: Iterable[CaptionChunk | Mapping]) -> None:
        self._segments = group_segments(chunks)
        logger.debug("Built %d caption segment(s)", len(self._segments))

    @property
    def segments(self) -> list[CaptionSegment]:
        return list(self._segments)

    def __bool__(self) -> bool:
        return bool(self._segments)

    def segment_at(self, t: float) -> CaptionSegment | None:
        return active_segment(self._segments, t)

    def text_at(self, t: float) -> str:
        seg = self.segment_at(t)
        return seg.text if seg else ""

    def export(self, fmt: str = "vtt") -> str:
        """Export segments as 'vtt' or 'srt'."""
        if fmt == "srt":
            return to_srt(self._segments)
        if fmt == "vtt":
            return to_vtt(self._segments)
        raise ValueError(f"Unsupported caption format: {fmt}")
