"""
Tests for the speech audio cache.

Cached WAVs are named:
    tts_<sha1>_<lang>_<voice>.wav
and live under GUIDED_READER_TTS_CACHE_DIR (redirected to tmp by conftest).
"""

import wave
from pathlib import Path

import pytest

from guided_reader.services import tts_pronouncer


# ------------------------------
# Filename / path behaviour
# ------------------------------

def test_cached_filename_pattern():
    name = tts_pronouncer.cached_filename("Hund", "de-DE", "de-DE-Standard-A")
    assert name.startswith("tts_")
    assert name.endswith("_de-DE_de-DE-Standard-A.wav")


def test_cached_filename_is_stable_and_distinguishes_requests():
    a = tts_pronouncer.cached_filename("Hund", "de-DE", "de-DE-Standard-A")
    assert a == tts_pronouncer.cached_filename("Hund", "de-DE", "de-DE-Standard-A")
    assert a != tts_pronouncer.cached_filename("Katze", "de-DE", "de-DE-Standard-A")
    assert a != tts_pronouncer.cached_filename("Hund", "de-DE", "de-DE-Standard-A", 0.8)


def test_unsafe_voice_characters_are_replaced():
    name = tts_pronouncer.cached_filename("x", "de-DE", "my voice/1")
    assert "/" not in name and " " not in name


def test_cache_dir_follows_env(tmp_path):
    assert tts_pronouncer.get_cache_dir() == tmp_path / "tts-cache"
    assert (tmp_path / "tts-cache").is_dir()


def test_default_voice_can_be_overridden(monkeypatch):
    assert tts_pronouncer.default_voice_for("bg-BG") == "bg-BG-Standard-A"
    monkeypatch.setenv("GUIDED_READER_GCP_VOICE_BG_BG", "bg-BG-Wavenet-B")
    assert tts_pronouncer.default_voice_for("bg-BG") == "bg-BG-Wavenet-B"


# ------------------------------
# Cache hit / miss
# ------------------------------

def test_cache_miss_triggers_synthesis_once():
    calls = []

    def _synth(text):
        calls.append(text)
        return b"RIFF....WAVE"

    out = tts_pronouncer.ensure_cached_wav("Hund", language_code="de-DE", synthesizer=_synth)
    again = tts_pronouncer.ensure_cached_wav("Hund", language_code="de-DE", synthesizer=_synth)

    assert out == again
    assert out.exists()
    assert out.read_bytes() == b"RIFF....WAVE"
    assert calls == ["Hund"]


def test_cache_hit_skips_synthesis():
    req = tts_pronouncer.TtsRequest(text="Katze", language_code="de-DE", voice_name="de-DE-Standard-A")
    path = tts_pronouncer.cached_path(req)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"RIFF....WAVE")

    def _bomb(text):
        raise AssertionError("Synthesis should not be called on cache hit!")

    out = tts_pronouncer.ensure_cached_wav(
        "Katze", language_code="de-DE", voice_name="de-DE-Standard-A", synthesizer=_bomb
    )
    assert out == path


def test_empty_cache_file_is_rebuilt():
    req = tts_pronouncer.TtsRequest(text="Maus", language_code="de-DE", voice_name="de-DE-Standard-A")
    path = tts_pronouncer.cached_path(req)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")

    out = tts_pronouncer.ensure_cached_wav("Maus", language_code="de-DE", synthesizer=lambda t: b"RIFF")
    assert out.read_bytes() == b"RIFF"


# ------------------------------
# PCM / WAV helpers
# ------------------------------

def test_pcm_is_wrapped_and_timed(tmp_path: Path):
    pcm = b"\x00\x00" * 12000
    out = tts_pronouncer.write_pcm_wav(tmp_path / "half.wav", pcm)

    with wave.open(str(out), "rb") as w:
        assert (w.getnchannels(), w.getsampwidth(), w.getframerate()) == (1, 2, 24000)
        assert w.getnframes() == 12000
    assert tts_pronouncer.pcm_duration(len(pcm)) == pytest.approx(0.5)
    assert not (tmp_path / "half.wav.tmp").exists()


def test_pcm_duration_ignores_partial_frames():
    assert tts_pronouncer.pcm_duration(48001) == pytest.approx(1.0)
    assert tts_pronouncer.pcm_duration(0) == 0.0
