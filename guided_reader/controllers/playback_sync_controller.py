"""Read-along playback with a synchronized highlight cursor.

The controller is the only writer of the audio position and of the
`PlaybackState`. While playing, a refresh timer reads the audio clock and maps
it onto the stamped segments; the timer is stopped the moment playback
leaves the playing state, so no recurring work outlives it.

The audio engine is duck-typed (see `QtAudioEngine`):
  - load(path), play(), pause(), stop()
  - position() -> seconds, set_position(seconds), set_rate(rate)
  - set_end_handler(cb), set_error_handler(cb)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from guided_reader.domain.enums import PlaybackState, PlaybackStatus
from guided_reader.domain.segments import Segment, strip_timing
from guided_reader.domain.timestamps import allocate_timestamps, find_active_segment

logger = logging.getLogger(__name__)

AudioProvider = Callable[[], Any]


class PlaybackSyncController(QObject):
    playing_changed = pyqtSignal(bool)
    active_segment_changed = pyqtSignal(object)
    rate_changed = pyqtSignal(float)
    segments_changed = pyqtSignal(list)
    loading_changed = pyqtSignal(bool, str)
    error_reported = pyqtSignal(str)

    def __init__(
        self,
        *,
        engine: Any,
        audio_provider: AudioProvider,
        runner: Any,
        tick_ms: int = 16,
        rate: float = 1.0,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._audio_provider = audio_provider
        self._runner = runner

        self._status = PlaybackStatus.STOPPED
        self._active: Optional[int] = None
        self._rate = float(rate) if rate > 0 else 1.0
        self._duration = 0.0
        self._audio: Any = None
        self._requesting = False
        self._segments: List[Segment] = []

        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(tick_ms)))
        self._timer.timeout.connect(self._tick)

        self._engine.set_error_handler(self._on_engine_error)

    # ----------------------------
    # Read-only views
    # ----------------------------

    def state(self) -> PlaybackState:
        return PlaybackState(
            status=self._status,
            active_segment_index=self._active,
            playback_rate=self._rate,
            audio_duration=self._duration,
        )

    def is_playing(self) -> bool:
        return self._status is PlaybackStatus.PLAYING

    def has_audio(self) -> bool:
        return self._audio is not None

    def segments(self) -> List[Segment]:
        return list(self._segments)

    # ----------------------------
    # Segments
    # ----------------------------

    def set_segments(self, segments: Sequence[Segment]) -> None:
        """Install a new segment list, stamping it when the duration is known."""
        self._set_active(None)
        self._install_segments(strip_timing(segments))

    def _install_segments(self, segments: List[Segment]) -> None:
        if segments and self._duration > 0:
            segments = allocate_timestamps(self._duration, segments)
        elif segments and self._audio is not None:
            logger.warning("Audio duration unavailable; segments stay untimed")
        self._segments = segments
        self.segments_changed.emit(list(segments))

    # ----------------------------
    # Audio generation
    # ----------------------------

    def generate_and_play(self) -> None:
        if self._audio is not None:
            self.play()
            return
        if self._requesting:
            logger.debug("Audio request already in flight")
            return

        self._requesting = True
        self.loading_changed.emit(True, "Generating audio...")
        self._runner.submit(self._audio_provider, self._on_audio_ready, self._on_audio_failed)

    def _on_audio_ready(self, audio: Any) -> None:
        self._requesting = False
        self.loading_changed.emit(False, "")
        duration = float(getattr(audio, "duration", 0.0) or 0.0)
        try:
            self._engine.load(audio.path)
        except Exception as e:
            self._on_audio_failed(e)
            return
        self._audio = audio
        self._duration = duration
        self._install_segments(strip_timing(self._segments))
        logger.info("Audio ready: %.3f s, %d segments", duration, len(self._segments))
        self.play()

    def _on_audio_failed(self, exc: BaseException) -> None:
        self._requesting = False
        self.loading_changed.emit(False, "")
        logger.error("Audio generation failed: %s", exc)
        self._audio = None
        self._duration = 0.0
        self._set_status(PlaybackStatus.STOPPED)
        self.error_reported.emit("Audio generation failed: {}".format(exc))

    # ----------------------------
    # Transport
    # ----------------------------

    def play(self) -> None:
        if self._audio is None:
            logger.debug("play() ignored: no audio loaded")
            return
        if self._duration > 0 and self._engine.position() >= self._duration:
            self._engine.set_position(0.0)
        self._engine.set_rate(self._rate)
        self._engine.set_end_handler(self._on_natural_end)
        self._engine.play()
        self._set_status(PlaybackStatus.PLAYING)

    def pause(self) -> None:
        if self._status is not PlaybackStatus.PLAYING:
            return
        self._engine.pause()
        self._set_status(PlaybackStatus.PAUSED)

    def stop(self) -> None:
        if self._audio is not None:
            self._engine.stop()
        self._set_status(PlaybackStatus.STOPPED)
        self._set_active(None)

    def seek_and_play(self, index: int) -> bool:
        """Jump to a stamped segment and make sure audio is playing."""
        if not 0 <= index < len(self._segments) or self._audio is None:
            return False
        seg = self._segments[index]
        if not seg.has_timing:
            return False
        self._engine.set_position(seg.start_time)
        self._set_active(index)
        if self._status is not PlaybackStatus.PLAYING:
            self.play()
        return True

    def set_rate(self, rate: float) -> None:
        rate = float(rate)
        if rate <= 0:
            raise ValueError("playback rate must be positive, got {}".format(rate))
        self._rate = rate
        self._engine.set_rate(rate)
        self.rate_changed.emit(rate)

    # ----------------------------
    # Sync loop
    # ----------------------------

    def _tick(self) -> None:
        if self._status is not PlaybackStatus.PLAYING:
            self._timer.stop()
            return
        position = self._engine.position()
        if self._duration > 0 and position >= self._duration:
            self._engine.pause()
            self._set_status(PlaybackStatus.STOPPED)
            self._set_active(None)
            return
        index = find_active_segment(self._segments, position)
        if index is not None:
            self._set_active(index)

    def _on_natural_end(self) -> None:
        self._set_status(PlaybackStatus.STOPPED)
        self._set_active(None)

    def _on_engine_error(self, message: str) -> None:
        self._set_status(PlaybackStatus.STOPPED)
        self._set_active(None)
        self.error_reported.emit("Audio playback failed: {}".format(message))

    # ----------------------------
    # State writes
    # ----------------------------

    def _set_status(self, status: PlaybackStatus) -> None:
        was_playing = self._status is PlaybackStatus.PLAYING
        self._status = status
        playing = status is PlaybackStatus.PLAYING
        if playing and not self._timer.isActive():
            self._timer.start()
        elif not playing:
            self._timer.stop()
        if playing != was_playing:
            logger.debug("Playback %s", status.value)
            self.playing_changed.emit(playing)

    def _set_active(self, index: Optional[int]) -> None:
        if index == self._active:
            return
        self._active = index
        self.active_segment_changed.emit(index)


__all__ = ["PlaybackSyncController"]
