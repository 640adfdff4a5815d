"""Run blocking service calls off the GUI thread.

Each call gets its own QThread with a worker object moved onto it. Results
and exceptions travel back through a relay object that lives on the GUI
thread, so `on_done` / `on_error` always run there (queued connection).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

logger = logging.getLogger(__name__)

DoneFn = Callable[[Any], None]
ErrorFn = Callable[[BaseException], None]


class _ServiceWorker(QObject):
    done = pyqtSignal(object)
    error = pyqtSignal(object)

    def __init__(self, fn: Callable[[], Any]) -> None:
        super().__init__()
        self._fn = fn

    def run(self) -> None:
        try:
            result = self._fn()
        except Exception as exc:
            self.error.emit(exc)
            return
        self.done.emit(result)


class _Relay(QObject):
    """GUI-thread end of one call; owns the thread and worker until finished."""

    def __init__(self, runner: "ServiceRunner", fn: Callable[[], Any], on_done: DoneFn, on_error: ErrorFn) -> None:
        super().__init__(runner)
        self._runner = runner
        self._on_done = on_done
        self._on_error = on_error
        self.thread = QThread()
        self.worker = _ServiceWorker(fn)
        self.worker.moveToThread(self.thread)

        self.thread.started.connect(self.worker.run)
        self.worker.done.connect(self.deliver_result)
        self.worker.error.connect(self.deliver_error)
        self.worker.done.connect(self.thread.quit)
        self.worker.error.connect(self.thread.quit)
        self.thread.finished.connect(self.release)

    @pyqtSlot(object)
    def deliver_result(self, result: Any) -> None:
        self._on_done(result)

    @pyqtSlot(object)
    def deliver_error(self, exc: Any) -> None:
        self._on_error(exc)

    @pyqtSlot()
    def release(self) -> None:
        self._runner._release(self)


class ServiceRunner(QObject):
    """Submit `fn` to a worker thread; callbacks run on the GUI thread."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._live: set[_Relay] = set()

    def submit(self, fn: Callable[[], Any], on_done: DoneFn, on_error: ErrorFn) -> None:
        relay = _Relay(self, fn, on_done, on_error)
        self._live.add(relay)
        relay.thread.start()

    def pending(self) -> int:
        return len(self._live)

    def _release(self, relay: _Relay) -> None:
        self._live.discard(relay)
        relay.deleteLater()

    def shutdown(self, timeout_ms: int = 2000) -> None:
        for relay in list(self._live):
            relay.thread.quit()
            if not relay.thread.wait(timeout_ms):
                logger.warning("Service thread did not finish within %d ms", timeout_ms)


__all__ = ["ServiceRunner"]
