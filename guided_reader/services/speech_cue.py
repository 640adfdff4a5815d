"""One-shot, cancellable speech requests.

`SpeechCue` owns the single speech channel: starting a cue cancels the one
before it, so at most one utterance is ever live. Every cue resolves exactly
once (finished, failed, cancelled or timed out); failures are logged and
reported as completion so that callers sequencing on cues never stall.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from guided_reader.errors import SpeechUnavailable

logger = logging.getLogger(__name__)


class SpeechCueHandle(QObject):
    """Completion signal for one utterance.

    Keep the handle referenced for as long as the cue matters; dropping it
    lets Qt tear down the object and its pending connections.
    """

    finished = pyqtSignal()

    def __init__(self, text: str, language: str, rate: float, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.text = text
        self.language = language
        self.rate = rate
        self._done = False
        self._callbacks: List[Callable[[], None]] = []

    def is_done(self) -> bool:
        return self._done

    def add_done_callback(self, cb: Callable[[], None]) -> None:
        """Call `cb` once the cue resolves (next event-loop turn if it already has)."""
        if self._done:
            QTimer.singleShot(0, cb)
            return
        self._callbacks.append(cb)

    def _resolve(self) -> None:
        if self._done:
            return
        self._done = True
        callbacks, self._callbacks = self._callbacks, []
        self.finished.emit()
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("Speech cue callback failed")


class SpeechCue(QObject):
    """Single-channel speech: `speak()` cancels any live cue first.

    The injected backend is duck-typed:
      - `speak(text, *, language, rate, on_complete)`
      - `stop()`
    """

    cue_started = pyqtSignal(str, str)

    def __init__(self, backend: Any, *, timeout_ms: int = 15000, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._backend = backend
        self._timeout_ms = max(1, int(timeout_ms))
        # Only this class writes _current.
        self._current: Optional[SpeechCueHandle] = None

    def is_speaking(self) -> bool:
        return self._current is not None

    def current(self) -> Optional[SpeechCueHandle]:
        return self._current

    def speak(self, text: str, language: str, rate: float = 1.0) -> SpeechCueHandle:
        self.cancel()

        handle = SpeechCueHandle(text, language, rate)
        self._current = handle
        self.cue_started.emit(text, language)

        def _complete() -> None:
            if self._current is handle:
                self._current = None
            handle._resolve()

        def _watchdog() -> None:
            if not handle.is_done():
                logger.warning("Speech cue %r timed out after %d ms", text, self._timeout_ms)
                _complete()

        QTimer.singleShot(self._timeout_ms, _watchdog)
        try:
            self._backend.speak(text, language=language, rate=rate, on_complete=_complete)
        except Exception as e:
            logger.warning("%s", SpeechUnavailable("could not speak {!r}: {}".format(text, e)))
            QTimer.singleShot(0, _complete)
        return handle

    def cancel(self) -> None:
        handle, self._current = self._current, None
        if handle is None:
            return
        try:
            self._backend.stop()
        except Exception as e:
            logger.warning("Speech backend stop failed: %s", e)
        handle._resolve()


__all__ = ["SpeechCue", "SpeechCueHandle"]
