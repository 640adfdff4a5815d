"""Timed intro -> translating -> fixation cycle over a vocabulary list.

The cycle is a small step machine. `_run()` performs the current step, which
always ends in exactly one suspension (a speech cue or a timer); the
continuation re-enters through `_resume()`, which checks the generation
token before touching any state. `start()`, `skip()` and `stop()` bump the
token, so a superseded run dies at its next checkpoint even if its timer
still fires.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import List, Optional, Sequence

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from guided_reader.domain.enums import CycleTimings, SessionPhase, SessionState
from guided_reader.domain.segments import VocabularyItem
from guided_reader.services.speech_cue import SpeechCue, SpeechCueHandle

logger = logging.getLogger(__name__)


class _CycleStep(Enum):
    INTRO_SPEECH = auto()
    INTRO_SETTLE = auto()
    TRANSLATION_SPEECH = auto()
    TRANSLATION_SETTLE = auto()
    FIXATION_DWELL = auto()
    ADVANCE = auto()


class SessionCycleScheduler(QObject):
    """Sequencer for the vocabulary cycle with skip/stop support."""

    phase_changed = pyqtSignal(object, int)
    index_changed = pyqtSignal(int)
    active_changed = pyqtSignal(bool)
    finished = pyqtSignal()

    def __init__(
        self,
        *,
        speech: SpeechCue,
        source_language: str,
        target_language: str,
        timings: Optional[CycleTimings] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._speech = speech
        self._source_language = source_language
        self._target_language = target_language
        self._timings = (timings or CycleTimings()).normalised()

        self._vocabulary: List[VocabularyItem] = []
        self._active = False
        self._index = 0
        self._phase = SessionPhase.INTRO
        self._step = _CycleStep.INTRO_SPEECH
        self._gen = 0
        # Cues stay referenced while their completion may still arrive.
        self._pending_cue: Optional[SpeechCueHandle] = None
        self._fixation_cue: Optional[SpeechCueHandle] = None

    # ----------------------------
    # Public API
    # ----------------------------

    def state(self) -> SessionState:
        return SessionState(
            active=self._active,
            current_index=self._index,
            phase=self._phase,
            generation=self._gen,
        )

    def is_active(self) -> bool:
        return self._active

    def generation(self) -> int:
        return self._gen

    def current_item(self) -> Optional[VocabularyItem]:
        if 0 <= self._index < len(self._vocabulary):
            return self._vocabulary[self._index]
        return None

    def set_vocabulary(self, items: Sequence[VocabularyItem]) -> None:
        if self._active:
            self.stop()
        self._vocabulary = list(items)
        self._index = 0

    def start(self) -> None:
        self._gen += 1
        if not self._vocabulary:
            logger.info("No vocabulary loaded; session not started")
            self._set_active(False)
            return
        self._set_active(True)
        self._begin(0)

    def skip(self) -> None:
        self._gen += 1
        if not self._active:
            return
        self._speech.cancel()
        nxt = self._index + 1
        if nxt >= len(self._vocabulary):
            self.stop()
            return
        logger.debug("Skipping to item %d (generation %d)", nxt, self._gen)
        self._begin(nxt)

    def stop(self) -> None:
        self._gen += 1
        self._set_active(False)
        self._speech.cancel()
        self._pending_cue = None
        self._fixation_cue = None

    # ----------------------------
    # Step machine
    # ----------------------------

    def _checkpoint(self, generation: int) -> bool:
        return (
            self._active
            and generation == self._gen
            and 0 <= self._index < len(self._vocabulary)
        )

    def _begin(self, index: int) -> None:
        self._index = index
        self._step = _CycleStep.INTRO_SPEECH
        self.index_changed.emit(index)
        self._run(self._gen)

    def _resume(self, generation: int, step: _CycleStep) -> None:
        if not self._checkpoint(generation):
            return
        self._step = step
        self._run(generation)

    def _run(self, generation: int) -> None:
        if not self._checkpoint(generation):
            return
        item = self._vocabulary[self._index]
        t = self._timings
        step = self._step

        if step is _CycleStep.INTRO_SPEECH:
            self._set_phase(SessionPhase.INTRO)
            cue = self._speech.speak(item.source_word, self._source_language, t.intro_rate)
            self._await_cue(generation, cue, _CycleStep.INTRO_SETTLE)
        elif step is _CycleStep.INTRO_SETTLE:
            self._sleep(generation, t.settle_ms, _CycleStep.TRANSLATION_SPEECH)
        elif step is _CycleStep.TRANSLATION_SPEECH:
            self._set_phase(SessionPhase.TRANSLATING)
            cue = self._speech.speak(item.translation, self._target_language, t.translation_rate)
            self._await_cue(generation, cue, _CycleStep.TRANSLATION_SETTLE)
        elif step is _CycleStep.TRANSLATION_SETTLE:
            self._sleep(generation, t.settle_ms, _CycleStep.FIXATION_DWELL)
        elif step is _CycleStep.FIXATION_DWELL:
            self._set_phase(SessionPhase.FIXATION)
            # The dwell timer runs on its own; the reinforcement cue is detached.
            self._sleep(generation, t.dwell_ms, _CycleStep.ADVANCE)
            self._speak_detached(item.source_word, self._source_language, t.intro_rate)
        elif step is _CycleStep.ADVANCE:
            nxt = self._index + 1
            if nxt >= len(self._vocabulary):
                logger.info("Session finished after %d items", len(self._vocabulary))
                self.stop()
                self.finished.emit()
                return
            self._begin(nxt)

    def _await_cue(self, generation: int, cue: SpeechCueHandle, next_step: _CycleStep) -> None:
        self._pending_cue = cue
        cue.add_done_callback(lambda: self._resume(generation, next_step))

    def _sleep(self, generation: int, ms: int, next_step: _CycleStep) -> None:
        QTimer.singleShot(max(0, int(ms)), lambda: self._resume(generation, next_step))

    def _speak_detached(self, text: str, language: str, rate: float) -> None:
        try:
            self._fixation_cue = self._speech.speak(text, language, rate)
        except Exception as e:
            # Outcome of the fixation cue never reaches the cycle.
            logger.warning("Fixation cue failed: %s", e)
            self._fixation_cue = None

    # ----------------------------
    # State writes
    # ----------------------------

    def _set_phase(self, phase: SessionPhase) -> None:
        self._phase = phase
        logger.debug("Item %d: %s", self._index, phase.value)
        self.phase_changed.emit(phase, self._index)

    def _set_active(self, active: bool) -> None:
        if active == self._active:
            return
        self._active = active
        self.active_changed.emit(active)


__all__ = ["SessionCycleScheduler"]
