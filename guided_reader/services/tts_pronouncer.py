"""Text-to-speech audio files: caching, synthesis and playback.

This module is UI-agnostic: it does not depend on any QWidget classes.
Callers synthesize with `ensure_cached_wav()` (usually on a worker thread)
and play the result with `play_wav()` on the GUI thread.

Primary responsibilities:
- Determine a stable cache filename for a requested utterance.
- Ensure a WAV exists on disk (cache hit/miss), written atomically.
- Wrap raw PCM from speech services in a WAV container and report its length.
- Play a WAV via QtMultimedia and report when playback ends.

Design note:
Tests can inject a `synthesizer` callable into `ensure_cached_wav()` to avoid
network calls.
"""

from __future__ import annotations

import hashlib
import logging
import os
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


# ----------------------------
# Public types
# ----------------------------


Synthesizer = Callable[[str], bytes]


@dataclass(frozen=True)
class TtsRequest:
    """A request to generate/locate audio for text."""

    text: str
    language_code: str = "de-DE"
    voice_name: str = "de-DE-Standard-A"
    speaking_rate: float | None = None


def default_voice_for(language_code: str) -> str:
    """Google Cloud standard voice for a language, e.g. de-DE -> de-DE-Standard-A."""
    env = (os.environ.get("GUIDED_READER_GCP_VOICE_" + language_code.replace("-", "_").upper()) or "").strip()
    if env:
        return env
    return "{}-Standard-A".format(language_code)


# ----------------------------
# Cache paths / filenames
# ----------------------------


def get_cache_dir() -> Path:
    """Return the directory used to store cached audio.

    Priority:
    1) GUIDED_READER_TTS_CACHE_DIR env var (absolute or relative)
    2) <project_root>/.cache/tts (if project root can be inferred)
    3) ~/.cache/guided_reader/tts

    The directory is created if it does not exist.
    """
    env = (os.environ.get("GUIDED_READER_TTS_CACHE_DIR") or "").strip()
    if env:
        p = Path(env).expanduser()
        p.mkdir(parents=True, exist_ok=True)
        return p

    # Walk upwards looking for pyproject.toml (max 5 levels).
    here = Path(__file__).resolve()
    project_root: Optional[Path] = None
    for i in range(1, 6):
        try:
            cand = here.parents[i]
        except IndexError:
            break
        if (cand / "pyproject.toml").exists():
            project_root = cand
            break

    if project_root is not None:
        p = project_root / ".cache" / "tts"
    else:
        p = Path.home() / ".cache" / "guided_reader" / "tts"
    p.mkdir(parents=True, exist_ok=True)
    return p


def cached_filename(
    text: str,
    language_code: str = "de-DE",
    voice_name: str = "de-DE-Standard-A",
    speaking_rate: float | None = None,
) -> str:
    """Return a stable cache filename for the given request.

    Format:
        tts_<sha1>_<lang>_<voice>.wav

    Where sha1 is computed over "<lang>\\n<voice>\\n<rate>\\n<text>" (UTF-8).
    """
    material = "{}\n{}\n{}\n{}".format(language_code, voice_name, speaking_rate or "", text)
    digest = hashlib.sha1(material.encode("utf-8")).hexdigest()

    safe_voice = "".join([c if c.isalnum() or c in ("-", "_", ".") else "_" for c in voice_name])
    safe_lang = "".join([c if c.isalnum() or c in ("-", "_") else "_" for c in language_code])

    return "tts_{}_{}_{}.wav".format(digest, safe_lang, safe_voice)


def cached_path(req: TtsRequest) -> Path:
    return get_cache_dir() / cached_filename(
        req.text,
        req.language_code,
        req.voice_name,
        req.speaking_rate,
    )


# ----------------------------
# WAV helpers
# ----------------------------


def write_bytes_atomic(out_path: Path, data: bytes) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = out_path.with_suffix(out_path.suffix + ".tmp")
    with open(tmp_path, "wb") as f:
        f.write(data)
    try:
        os.replace(str(tmp_path), str(out_path))
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
    return out_path


def write_pcm_wav(
    out_path: Path,
    pcm: bytes,
    *,
    sample_rate: int = 24000,
    channels: int = 1,
    sample_width: int = 2,
) -> Path:
    """Wrap raw little-endian PCM in a WAV container (written atomically)."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = out_path.with_suffix(out_path.suffix + ".tmp")
    with wave.open(str(tmp_path), "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(sample_width)
        w.setframerate(sample_rate)
        w.writeframes(pcm)
    os.replace(str(tmp_path), str(out_path))
    return out_path


def pcm_duration(num_bytes: int, *, sample_rate: int = 24000, channels: int = 1, sample_width: int = 2) -> float:
    """Seconds of audio in `num_bytes` of raw PCM."""
    frame_size = channels * sample_width
    if frame_size <= 0 or sample_rate <= 0:
        return 0.0
    return (num_bytes // frame_size) / float(sample_rate)


# ----------------------------
# Synthesis backends
# ----------------------------


def _google_cloud_synthesize_wav(req: TtsRequest) -> bytes:
    """Synthesize WAV bytes via Google Cloud Text-to-Speech.

    Requirements:
    - google-cloud-texttospeech installed
    - credentials provided via GOOGLE_APPLICATION_CREDENTIALS.

    Raises RuntimeError if the backend is unavailable.
    """
    try:
        from google.cloud import texttospeech  # type: ignore
    except ImportError as e:
        raise RuntimeError("Google Cloud TTS backend unavailable: {}".format(e))

    client = texttospeech.TextToSpeechClient()

    synthesis_input = texttospeech.SynthesisInput(text=req.text)

    voice = texttospeech.VoiceSelectionParams(
        language_code=req.language_code,
        name=req.voice_name,
    )

    # LINEAR16 is standard WAV PCM.
    if req.speaking_rate is not None:
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            speaking_rate=float(req.speaking_rate),
        )
    else:
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
        )

    response = client.synthesize_speech(
        input=synthesis_input,
        voice=voice,
        audio_config=audio_config,
    )

    return bytes(response.audio_content)


def default_synthesizer(req: TtsRequest) -> bytes:
    return _google_cloud_synthesize_wav(req)


# ----------------------------
# Cache ensure + playback
# ----------------------------


def ensure_cached_wav(
    text: str,
    *,
    language_code: str = "de-DE",
    voice_name: str | None = None,
    speaking_rate: float | None = None,
    synthesizer: Optional[Synthesizer] = None,
) -> Path:
    """Ensure a cached WAV exists for `text` and return its path.

    If the WAV already exists, returns immediately without calling the synthesizer.
    """
    req = TtsRequest(
        text=text,
        language_code=language_code,
        voice_name=voice_name or default_voice_for(language_code),
        speaking_rate=speaking_rate,
    )
    out_path = cached_path(req)

    if out_path.exists() and out_path.is_file() and out_path.stat().st_size > 0:
        return out_path

    if synthesizer is None:
        wav_bytes = default_synthesizer(req)
    else:
        wav_bytes = synthesizer(text)

    logger.debug("Cached %d bytes of speech at %s", len(wav_bytes), out_path)
    return write_bytes_atomic(out_path, wav_bytes)


def play_wav(path: Path, on_finished: Optional[Callable[[], None]] = None):
    """Play a WAV file via QSoundEffect; returns the effect (keep it referenced).

    `on_finished` fires once, when playback stops or the file fails to load.
    Must be called on the GUI thread.
    """
    from PyQt6.QtCore import QUrl
    from PyQt6.QtMultimedia import QSoundEffect

    eff = QSoundEffect()
    fired = {"done": False}

    def _finish() -> None:
        if fired["done"]:
            return
        fired["done"] = True
        if on_finished is not None:
            on_finished()

    def _on_playing_changed() -> None:
        if not eff.isPlaying():
            _finish()

    def _on_status_changed() -> None:
        if eff.status() == QSoundEffect.Status.Error:
            logger.warning("Could not load speech audio %s", path)
            _finish()

    eff.playingChanged.connect(_on_playing_changed)
    eff.statusChanged.connect(_on_status_changed)
    eff.setSource(QUrl.fromLocalFile(str(path)))
    eff.setLoopCount(1)
    eff.setVolume(1.0)
    eff.play()
    return eff


__all__ = [
    "TtsRequest",
    "Synthesizer",
    "default_voice_for",
    "get_cache_dir",
    "cached_filename",
    "cached_path",
    "write_bytes_atomic",
    "write_pcm_wav",
    "pcm_duration",
    "ensure_cached_wav",
    "play_wav",
]
