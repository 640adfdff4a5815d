from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional

from guided_reader.services import tts_pronouncer
from guided_reader.services.service_worker import ServiceRunner
from tts.tts_service import TTSService

logger = logging.getLogger(__name__)


def is_test_mode() -> bool:
    return str(os.environ.get("GUIDED_READER_TEST_MODE", "")).strip().lower() in ("1", "true", "yes", "on")


class HybridSpeechBackend:
    """Prefer Google Cloud TTS, fall back to macOS/system voices.

    Synthesis and system-voice playback run on worker threads; cloud audio is
    played on the GUI thread through QSoundEffect. `on_complete` is called
    exactly once per `speak()`, whether the speech finished, failed or was
    superseded.
    """

    def __init__(
        self,
        *,
        runner: ServiceRunner,
        fallback: Optional[TTSService] = None,
        synthesizer: Optional[tts_pronouncer.Synthesizer] = None,
    ) -> None:
        self._runner = runner
        self._fallback = fallback or TTSService()
        self._synthesizer = synthesizer
        self._request = 0
        # QSoundEffect must stay referenced while it plays.
        self._effect: Any = None

    def speak(self, text: str, *, language: str, rate: float, on_complete: Callable[[], None]) -> None:
        self.stop()
        if is_test_mode():
            on_complete()
            return

        self._request += 1
        request = self._request
        if not os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"):
            alt = (os.environ.get("GUIDED_READER_APPLICATION_CREDENTIALS") or "").strip()
            if alt:
                os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = alt

        def _synthesize():
            return tts_pronouncer.ensure_cached_wav(
                text,
                language_code=language,
                speaking_rate=rate,
                synthesizer=self._synthesizer,
            )

        def _on_synthesized(path) -> None:
            if request != self._request:
                on_complete()
                return
            logger.debug("Playing cloud voice for %r (%s)", text, language)
            self._effect = tts_pronouncer.play_wav(path, on_finished=on_complete)

        def _on_synthesis_failed(exc: BaseException) -> None:
            if request != self._request:
                on_complete()
                return
            logger.warning("Cloud TTS failed (%s); falling back to system voice", exc)
            self._speak_with_fallback(text, language, rate, request, on_complete)

        self._runner.submit(_synthesize, _on_synthesized, _on_synthesis_failed)

    def _speak_with_fallback(
        self,
        text: str,
        language: str,
        rate: float,
        request: int,
        on_complete: Callable[[], None],
    ) -> None:
        def _still_current() -> bool:
            return request == self._request

        def _run() -> None:
            # Checked again under the voice lock right before the process starts.
            if _still_current():
                self._fallback.speak(text, language, rate, should_start=_still_current)

        def _failed(exc: BaseException) -> None:
            logger.warning("System voice unavailable for %s: %s", language, exc)
            on_complete()

        self._runner.submit(_run, lambda _result: on_complete(), _failed)

    def stop(self) -> None:
        self._request += 1
        effect, self._effect = self._effect, None
        if effect is not None:
            effect.stop()
        self._fallback.stop()


__all__ = ["HybridSpeechBackend", "is_test_mode"]
