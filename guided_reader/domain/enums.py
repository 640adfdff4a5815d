from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PlaybackStatus(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class SessionPhase(Enum):
    """Phases of one vocabulary item, in presentation order."""

    INTRO = "intro"
    TRANSLATING = "translating"
    FIXATION = "fixation"


@dataclass(frozen=True)
class CycleTimings:
    """Rates and delays for the vocabulary cycle (delays in milliseconds)."""

    intro_rate: float = 0.8
    translation_rate: float = 1.0
    settle_ms: int = 500
    dwell_ms: int = 4500

    def normalised(self) -> "CycleTimings":
        intro = float(self.intro_rate)
        if intro <= 0:
            intro = 0.8
        translation = float(self.translation_rate)
        if translation <= 0:
            translation = 1.0
        return CycleTimings(
            intro_rate=intro,
            translation_rate=translation,
            settle_ms=max(0, int(self.settle_ms)),
            dwell_ms=max(0, int(self.dwell_ms)),
        )


@dataclass(frozen=True)
class PlaybackState:
    """Read-only snapshot of the read-along player."""

    status: PlaybackStatus = PlaybackStatus.STOPPED
    active_segment_index: int | None = None
    playback_rate: float = 1.0
    audio_duration: float = 0.0

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of the vocabulary cycle."""

    active: bool = False
    current_index: int = 0
    phase: SessionPhase = SessionPhase.INTRO
    generation: int = 0


__all__ = [
    "PlaybackStatus",
    "SessionPhase",
    "CycleTimings",
    "PlaybackState",
    "SessionState",
]
