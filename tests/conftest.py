# tests/conftest.py
import os
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

os.environ.setdefault("GUIDED_READER_TEST_MODE", "1")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class ImmediateRunner:
    """ServiceRunner stand-in that runs the call inline on the test thread."""

    def __init__(self):
        self.calls = 0

    def submit(self, fn, on_done, on_error):
        self.calls += 1
        try:
            result = fn()
        except Exception as exc:
            on_error(exc)
            return
        on_done(result)

    def shutdown(self, timeout_ms: int = 2000):
        pass


class ManualRunner:
    """ServiceRunner stand-in whose calls complete only when the test says so."""

    def __init__(self):
        self.pending: List[tuple] = []

    def submit(self, fn, on_done, on_error):
        self.pending.append((fn, on_done, on_error))

    def complete(self, i: int = 0):
        fn, on_done, on_error = self.pending.pop(i)
        try:
            result = fn()
        except Exception as exc:
            on_error(exc)
            return
        on_done(result)

    def shutdown(self, timeout_ms: int = 2000):
        pass


class FakeAudioEngine:
    """In-memory audio clock; the test moves `pos` by hand."""

    def __init__(self):
        self.loaded: Optional[Path] = None
        self.pos = 0.0
        self.rate = 1.0
        self.playing = False
        self.play_calls = 0
        self.fail_load = False
        self._on_ended: Optional[Callable[[], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    def set_end_handler(self, cb):
        self._on_ended = cb

    def set_error_handler(self, cb):
        self._on_error = cb

    def load(self, path):
        if self.fail_load:
            raise RuntimeError("cannot decode")
        self.loaded = Path(path)

    def play(self):
        self.playing = True
        self.play_calls += 1

    def pause(self):
        self.playing = False

    def stop(self):
        self.playing = False
        self.pos = 0.0

    def position(self):
        return self.pos

    def set_position(self, seconds):
        self.pos = float(seconds)

    def set_rate(self, rate):
        self.rate = float(rate)

    def fire_end(self):
        self.playing = False
        if self._on_ended is not None:
            self._on_ended()

    def fire_error(self, message="decoder crashed"):
        if self._on_error is not None:
            self._on_error(message)


class SpeechCall:
    def __init__(self, text, language, rate, on_complete):
        self.text = text
        self.language = language
        self.rate = rate
        self.on_complete = on_complete


class ManualSpeechBackend:
    """Records utterances; each completes only when the test calls finish()."""

    def __init__(self):
        self.calls: List[SpeechCall] = []
        self.stops = 0

    def speak(self, text, *, language, rate, on_complete):
        self.calls.append(SpeechCall(text, language, rate, on_complete))

    def stop(self):
        self.stops += 1

    def finish(self, i: int = -1):
        self.calls[i].on_complete()

    @property
    def texts(self):
        return [c.text for c in self.calls]


class InstantSpeechBackend(ManualSpeechBackend):
    """Completes every utterance as soon as it starts."""

    def speak(self, text, *, language, rate, on_complete):
        super().speak(text, language=language, rate=rate, on_complete=on_complete)
        on_complete()


@pytest.fixture
def immediate_runner():
    return ImmediateRunner()


@pytest.fixture
def manual_runner():
    return ManualRunner()


@pytest.fixture
def audio_engine():
    return FakeAudioEngine()


@pytest.fixture
def manual_speech():
    return ManualSpeechBackend()


@pytest.fixture
def instant_speech():
    return InstantSpeechBackend()


@pytest.fixture(autouse=True)
def _tts_cache(tmp_path, monkeypatch):
    monkeypatch.setenv("GUIDED_READER_TTS_CACHE_DIR", str(tmp_path / "tts-cache"))
