"""Segments of the source text and vocabulary pairs.

Both arrive from the language service as decoded JSON. The parsers here are
forgiving per entry (a broken entry is skipped and logged) but strict about
the overall shape: anything other than a list raises
`MalformedServiceResponse`, which callers treat as an empty result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional

from guided_reader.errors import MalformedServiceResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """One word or punctuation token of the source text."""

    text: str
    is_word: bool
    translation: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be set together")

    @property
    def has_timing(self) -> bool:
        return self.start_time is not None

    def with_timing(self, start: float, end: float) -> "Segment":
        return replace(self, start_time=float(start), end_time=float(end))

    def without_timing(self) -> "Segment":
        return replace(self, start_time=None, end_time=None)


@dataclass(frozen=True)
class VocabularyItem:
    """A (source word, translation) pair presented by the learning cycle."""

    source_word: str
    translation: str

    def __post_init__(self) -> None:
        if not isinstance(self.source_word, str) or not self.source_word.strip():
            raise ValueError("source_word must be a non-empty string")


def _require_list(payload: Any, what: str) -> List[Any]:
    if not isinstance(payload, list):
        raise MalformedServiceResponse(
            "expected a JSON array of {}, got {}".format(what, type(payload).__name__)
        )
    return payload


def parse_segments(payload: Any) -> List[Segment]:
    """Build segments from `[{text, isWord, translation}, ...]`.

    Whitespace-only items are dropped; translations are kept for words only.
    """
    out: List[Segment] = []
    for i, raw in enumerate(_require_list(payload, "segments")):
        if not isinstance(raw, dict):
            logger.warning("Skipping segment #%d: not an object (%r)", i, raw)
            continue
        text = raw.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        is_word = bool(raw.get("isWord", raw.get("is_word", False)))
        translation = raw.get("translation")
        if not is_word or not isinstance(translation, str) or not translation.strip():
            translation = None
        out.append(Segment(text=text.strip(), is_word=is_word, translation=translation))
    return out


def parse_vocabulary(payload: Any, *, source_key: str = "source", target_key: str = "translation") -> List[VocabularyItem]:
    """Build vocabulary items from `[{<source_key>, <target_key>}, ...]`."""
    out: List[VocabularyItem] = []
    for i, raw in enumerate(_require_list(payload, "vocabulary pairs")):
        if not isinstance(raw, dict):
            logger.warning("Skipping vocabulary #%d: not an object (%r)", i, raw)
            continue
        source = raw.get(source_key)
        target = raw.get(target_key)
        if not isinstance(source, str) or not source.strip():
            logger.warning("Skipping vocabulary #%d: empty source word", i)
            continue
        out.append(VocabularyItem(source_word=source.strip(), translation=str(target or "").strip()))
    return out


def strip_timing(segments: Iterable[Segment]) -> List[Segment]:
    return [s.without_timing() if s.has_timing else s for s in segments]


__all__ = [
    "Segment",
    "VocabularyItem",
    "parse_segments",
    "parse_vocabulary",
    "strip_timing",
]
