"""Composition root for one reading session.

`ReaderController` wires the loader, read-along player, speech channel,
vocabulary cycle and flashcard deck together and exposes the action entry
points a presentation layer calls. `create_reader()` builds one with the real
Gemini, Qt multimedia and TTS services; tests construct the controller
directly with fakes.

This module must not start the Qt event loop; it assumes a Q(Core)Application
exists.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from guided_reader.controllers.content_loader import ContentLoader
from guided_reader.controllers.flashcard_deck import FlashcardDeck
from guided_reader.controllers.playback_sync_controller import PlaybackSyncController
from guided_reader.controllers.session_cycle_scheduler import SessionCycleScheduler
from guided_reader.domain.enums import PlaybackState, SessionState
from guided_reader.domain.segments import Segment, VocabularyItem
from guided_reader.services.speech_cue import SpeechCue, SpeechCueHandle

logger = logging.getLogger(__name__)


class ReaderController(QObject):
    """Owns UI-independent wiring and the produced action interface."""

    vocabulary_changed = pyqtSignal(list)
    error_reported = pyqtSignal(str)

    def __init__(
        self,
        *,
        source_text: str,
        loader: ContentLoader,
        playback: PlaybackSyncController,
        speech: SpeechCue,
        session: SessionCycleScheduler,
        source_language: str,
        playback_rates: Sequence[float] = (0.75, 1.0, 1.25),
        runner: Any = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._rates = sorted(float(r) for r in playback_rates if r > 0) or [1.0]
        self.source_text = source_text
        self.runner = runner
        self.loader = loader
        self.playback = playback
        self.speech = speech
        self.session = session
        self.deck = FlashcardDeck()
        self._source_language = source_language
        self._vocabulary: List[VocabularyItem] = []
        # Single-word pronunciations (vocabulary list / flashcards).
        self._word_cue: Optional[SpeechCueHandle] = None

        self.loader.vocabulary_loaded.connect(self._on_vocabulary_loaded)
        self.loader.segments_loaded.connect(self.playback.set_segments)
        self.loader.error_reported.connect(self.error_reported)
        self.playback.error_reported.connect(self.error_reported)

    # ----------------------------
    # Loading
    # ----------------------------

    def load(self) -> None:
        self.loader.load(self.source_text)

    def vocabulary(self) -> List[VocabularyItem]:
        return list(self._vocabulary)

    def segments(self) -> List[Segment]:
        return self.playback.segments()

    def _on_vocabulary_loaded(self, items: list) -> None:
        self._vocabulary = list(items)
        self.session.set_vocabulary(self._vocabulary)
        self.deck.set_items(self._vocabulary)
        self.vocabulary_changed.emit(list(self._vocabulary))

    # ----------------------------
    # Produced state
    # ----------------------------

    def playback_state(self) -> PlaybackState:
        return self.playback.state()

    def session_state(self) -> SessionState:
        return self.session.state()

    # ----------------------------
    # Actions
    # ----------------------------

    def play(self) -> None:
        self.playback.generate_and_play()

    def pause(self) -> None:
        self.playback.pause()

    def toggle_play(self) -> None:
        if self.playback.is_playing():
            self.playback.pause()
        else:
            self.playback.generate_and_play()

    def stop(self) -> None:
        self.playback.stop()

    def seek(self, segment_index: int) -> bool:
        return self.playback.seek_and_play(segment_index)

    def set_rate(self, rate: float) -> None:
        self.playback.set_rate(rate)

    def playback_rates(self) -> List[float]:
        """Rate steps offered to the user, slowest first."""
        return list(self._rates)

    def step_rate(self) -> float:
        """Move to the next offered rate, wrapping from the fastest to the slowest."""
        current = self.playback.state().playback_rate
        faster = [r for r in self._rates if r > current + 1e-9]
        rate = faster[0] if faster else self._rates[0]
        self.playback.set_rate(rate)
        return rate

    def start_session(self) -> None:
        self.playback.stop()
        self.session.start()

    def skip(self) -> None:
        self.session.skip()

    def stop_session(self) -> None:
        self.session.stop()

    def pronounce(self, word: str) -> SpeechCueHandle:
        self._word_cue = self.speech.speak(word, self._source_language, 1.0)
        return self._word_cue

    def shutdown(self) -> None:
        self.session.stop()
        self.playback.stop()
        self.speech.cancel()
        if self.runner is not None:
            self.runner.shutdown()


def create_reader(source_text: str, *, config_path: str | None = None, parent: Optional[QObject] = None) -> ReaderController:
    """Build a ReaderController backed by Gemini, QtMultimedia and cloud/system TTS."""
    from guided_reader.controllers.audio_engine import QtAudioEngine
    from guided_reader.services.config_store import ConfigStore
    from guided_reader.services.language_service import GeminiLanguageService
    from guided_reader.services.service_worker import ServiceRunner
    from guided_reader.services.speech_backend import HybridSpeechBackend

    config = ConfigStore(config_path)
    runner = ServiceRunner(parent)
    service = GeminiLanguageService(
        source_language=config.source_language(),
        target_language=config.target_language(),
        text_model=config.text_model(),
        speech_model=config.speech_model(),
        voice_name=config.voice_name(),
    )

    speech = SpeechCue(
        HybridSpeechBackend(runner=runner),
        timeout_ms=config.speech_timeout_ms(),
        parent=parent,
    )
    playback = PlaybackSyncController(
        engine=QtAudioEngine(parent),
        audio_provider=lambda: service.get_audio(source_text),
        runner=runner,
        tick_ms=config.sync_interval_ms(),
        rate=config.default_rate(),
        parent=parent,
    )
    session = SessionCycleScheduler(
        speech=speech,
        source_language=config.source_language(),
        target_language=config.target_language(),
        timings=config.cycle_timings(),
        parent=parent,
    )
    loader = ContentLoader(service=service, runner=runner, parent=parent)
    reader = ReaderController(
        source_text=source_text,
        loader=loader,
        playback=playback,
        speech=speech,
        session=session,
        source_language=config.source_language(),
        playback_rates=config.playback_rates(),
        runner=runner,
        parent=parent,
    )
    return reader


__all__ = ["ReaderController", "create_reader"]
