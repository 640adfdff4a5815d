"""Heuristic timing for segments of synthesized speech.

The generated audio carries no per-word timing, so each segment gets a
weight approximating how long it takes to say, and the total duration is
split proportionally. Start times are accumulated left to right, which makes
the last end time land on the total duration without per-segment rounding.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from guided_reader.domain.segments import Segment

SENTENCE_TERMINATORS = (".", "!", "?")
CLAUSE_SEPARATORS = (",", ";", ":")

# Word overhead approximates the inter-word pause and articulation floor.
WORD_OVERHEAD = 2
SENTENCE_PAUSE_WEIGHT = 12
CLAUSE_PAUSE_WEIGHT = 6
DEFAULT_PAUSE_WEIGHT = 2


def segment_weight(segment: Segment) -> int:
    """Relative spoken length of a segment."""
    if segment.is_word:
        return len(segment.text) + WORD_OVERHEAD
    if any(c in segment.text for c in SENTENCE_TERMINATORS):
        return SENTENCE_PAUSE_WEIGHT
    if any(c in segment.text for c in CLAUSE_SEPARATORS):
        return CLAUSE_PAUSE_WEIGHT
    return DEFAULT_PAUSE_WEIGHT


def allocate_timestamps(duration: float, segments: Sequence[Segment]) -> List[Segment]:
    """Return copies of `segments` stamped with start/end times over [0, duration].

    An empty list comes back unchanged. A non-positive duration collapses
    every window to 0; callers must read that as "timing unavailable".
    """
    if not segments:
        return list(segments)

    weights = [segment_weight(s) for s in segments]
    total = float(sum(weights))
    span = float(duration) if duration > 0 else 0.0

    out: List[Segment] = []
    cursor = 0.0
    for seg, weight in zip(segments, weights):
        share = (weight / total) * span
        start = cursor
        cursor += share
        out.append(seg.with_timing(start, cursor))
    return out


def find_active_segment(segments: Sequence[Segment], position: float) -> Optional[int]:
    """Index of the timed segment whose window `[start, end)` contains `position`.

    The last timed segment is treated as open-ended so the final instant and
    trailing rounding in the audio clock still map onto it.
    """
    if position < 0:
        return None
    last_timed: Optional[int] = None
    for i, seg in enumerate(segments):
        if not seg.has_timing:
            continue
        last_timed = i
        if seg.start_time <= position < seg.end_time:
            return i
    if last_timed is not None and position >= segments[last_timed].start_time:
        return last_timed
    return None


__all__ = [
    "segment_weight",
    "allocate_timestamps",
    "find_active_segment",
]
