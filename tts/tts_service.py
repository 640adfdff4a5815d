# tts/tts_service.py
from __future__ import annotations

import logging
import platform
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

# Rate 1.0 maps to this many words per minute for system voices.
BASE_WPM = 175


@dataclass
class _Voice:
    name: str
    lang: Optional[str]  # e.g., 'de_DE', 'bg_BG'


def _list_macos_voices() -> List[_Voice]:
    """Return available macOS voices from `say -v '?'`."""
    try:
        out = subprocess.run(["say", "-v", "?"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return []
    voices: List[_Voice] = []
    for raw in out.stdout.splitlines():
        line = raw.strip()
        if not line:
            continue
        no_sample = line.split('#', 1)[0].rstrip()
        parts = no_sample.split()
        if not parts:
            continue
        # Last token like de_DE is a lang tag; name is the rest
        if len(parts) >= 2 and '_' in parts[-1]:
            lang = parts[-1]
            name = " ".join(parts[:-1]).strip()
        else:
            name = no_sample.strip()
            lang = None
        if name:
            voices.append(_Voice(name=name, lang=lang))
    return voices


def _pick_voice(voices: List[_Voice], language: str) -> Optional[str]:
    wanted = language.replace("-", "_").lower()
    for v in voices:
        if (v.lang or "").lower() == wanted:
            return v.name
    prefix = wanted.split("_", 1)[0]
    for v in voices:
        if (v.lang or "").lower().startswith(prefix + "_"):
            return v.name
    return None


def rate_to_wpm(rate: float) -> int:
    return max(40, int(round(BASE_WPM * float(rate))))


class TTSService:
    """UI-agnostic system voice facade (blocking; run it off the GUI thread).

    macOS: uses `say` and picks a voice matching the requested language.
    Elsewhere: pyttsx3, when installed and a voice is available.
    """

    def __init__(self) -> None:
        self.platform = platform.system().lower()
        self._voices: Optional[List[_Voice]] = None
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._engine = None

    def voice_for(self, language: str) -> Optional[str]:
        if self.platform != "darwin":
            return None
        if self._voices is None:
            self._voices = _list_macos_voices()
        return _pick_voice(self._voices, language)

    def speak(
        self,
        text: str,
        language: str = "de-DE",
        rate: float = 1.0,
        should_start: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Speak `text` and return once speech has finished or was stopped.

        `should_start` is evaluated under the same lock `stop()` takes, right
        before the voice starts; returning False refuses the utterance. Returns
        whether anything was spoken.
        """
        if not text:
            return False
        if self.platform == "darwin":
            cmd = ["say"]
            voice = self.voice_for(language)
            if voice:
                cmd += ["-v", voice]
            else:
                logger.info("No system voice for %s; using default", language)
            cmd += ["-r", str(rate_to_wpm(rate)), text]
            with self._lock:
                if should_start is not None and not should_start():
                    return False
                self._proc = subprocess.Popen(cmd)
                proc = self._proc
            proc.wait()
            with self._lock:
                if self._proc is proc:
                    self._proc = None
            return True

        import pyttsx3  # type: ignore

        engine = pyttsx3.init()
        engine.setProperty("rate", rate_to_wpm(rate))
        with self._lock:
            if should_start is not None and not should_start():
                return False
            self._engine = engine
        try:
            engine.say(text)
            engine.runAndWait()
        finally:
            with self._lock:
                if self._engine is engine:
                    self._engine = None
        return True

    def stop(self) -> None:
        with self._lock:
            proc, engine = self._proc, self._engine
            if proc is not None and proc.poll() is None:
                proc.terminate()
        if engine is not None:
            engine.stop()
