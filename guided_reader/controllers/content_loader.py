from __future__ import annotations

import logging
from typing import Any, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


class ContentLoader(QObject):
    """Fetches vocabulary and segments concurrently under one loading state.

    Each call reports its own failure; a failed vocabulary request does not
    disturb segment loading and vice versa. The loading state clears once
    both calls have settled. A newer `load()` supersedes any older one.
    """

    loading_changed = pyqtSignal(bool, str)
    vocabulary_loaded = pyqtSignal(list)
    segments_loaded = pyqtSignal(list)
    error_reported = pyqtSignal(str)

    def __init__(self, *, service: Any, runner: Any, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._service = service
        self._runner = runner
        self._gen = 0
        self._outstanding = 0

    def is_loading(self) -> bool:
        return self._outstanding > 0

    def load(self, source_text: str) -> None:
        self._gen += 1
        token = self._gen
        self._outstanding = 2
        self.loading_changed.emit(True, "Analyzing the text and building the vocabulary...")

        def _settled() -> None:
            if token != self._gen:
                return
            self._outstanding -= 1
            if self._outstanding <= 0:
                self._outstanding = 0
                self.loading_changed.emit(False, "")

        def _vocab_done(items: List[Any]) -> None:
            if token == self._gen:
                logger.info("Loaded %d vocabulary items", len(items))
                self.vocabulary_loaded.emit(list(items))
            _settled()

        def _vocab_failed(exc: BaseException) -> None:
            if token == self._gen:
                logger.error("Vocabulary retrieval failed: %s", exc)
                self.error_reported.emit("Could not load vocabulary: {}".format(exc))
            _settled()

        def _segments_done(segments: List[Any]) -> None:
            if token == self._gen:
                logger.info("Loaded %d segments", len(segments))
                self.segments_loaded.emit(list(segments))
            _settled()

        def _segments_failed(exc: BaseException) -> None:
            if token == self._gen:
                logger.error("Segment retrieval failed: %s", exc)
                self.error_reported.emit("Could not load the text analysis: {}".format(exc))
            _settled()

        self._runner.submit(lambda: self._service.get_vocabulary(source_text), _vocab_done, _vocab_failed)
        self._runner.submit(lambda: self._service.get_segments(source_text), _segments_done, _segments_failed)


__all__ = ["ContentLoader"]
