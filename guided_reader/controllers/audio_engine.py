from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QAudioOutput, QMediaPlayer

logger = logging.getLogger(__name__)


class QtAudioEngine(QObject):
    """Audio clock for the read-along: a QMediaPlayer with seconds-based controls.

    Positions and durations are exchanged in seconds. The natural-end and
    error handlers are plain callables installed by the owning controller.
    """

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._player = QMediaPlayer(self)
        self._output = QAudioOutput(self)
        self._output.setVolume(1.0)
        self._player.setAudioOutput(self._output)
        # Keep the voice pitch when slowing down or speeding up.
        if hasattr(self._player, "setPitchCompensation"):
            self._player.setPitchCompensation(True)
        else:
            logger.debug("Pitch compensation unavailable in this Qt build; rate changes may shift pitch")

        self._on_ended: Optional[Callable[[], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

        self._player.mediaStatusChanged.connect(self._on_media_status_changed)
        self._player.errorOccurred.connect(self._on_player_error)

    def set_end_handler(self, cb: Optional[Callable[[], None]]) -> None:
        self._on_ended = cb

    def set_error_handler(self, cb: Optional[Callable[[str], None]]) -> None:
        self._on_error = cb

    def load(self, path: Path) -> None:
        self._player.setSource(QUrl.fromLocalFile(str(path)))

    def play(self) -> None:
        self._player.play()

    def pause(self) -> None:
        self._player.pause()

    def stop(self) -> None:
        self._player.stop()
        self._player.setPosition(0)

    def position(self) -> float:
        return self._player.position() / 1000.0

    def set_position(self, seconds: float) -> None:
        self._player.setPosition(max(0, int(round(seconds * 1000))))

    def set_rate(self, rate: float) -> None:
        self._player.setPlaybackRate(float(rate))

    def _on_media_status_changed(self, status: QMediaPlayer.MediaStatus) -> None:
        if status == QMediaPlayer.MediaStatus.EndOfMedia and self._on_ended is not None:
            self._on_ended()
        elif status == QMediaPlayer.MediaStatus.InvalidMedia and self._on_error is not None:
            self._on_error("invalid media")

    def _on_player_error(self, error: QMediaPlayer.Error, error_string: str) -> None:
        if error == QMediaPlayer.Error.NoError:
            return
        logger.error("Audio playback error: %s", error_string)
        if self._on_error is not None:
            self._on_error(error_string)


__all__ = ["QtAudioEngine"]
