from pathlib import Path

import pytest
import yaml

from guided_reader.domain.enums import CycleTimings
from guided_reader.services.config_store import ConfigStore


def _write(tmp_path: Path, data) -> ConfigStore:
    p = tmp_path / "config.yaml"
    p.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return ConfigStore(str(p))


def test_missing_file_gives_defaults(tmp_path):
    store = ConfigStore(str(tmp_path / "nope.yaml"))
    assert store.load() == {}
    assert store.source_language() == "de-DE"
    assert store.target_language() == "bg-BG"
    assert store.playback_rates() == [0.75, 1.0, 1.25]
    assert store.default_rate() == 1.0
    assert store.sync_interval_ms() == 16
    assert store.speech_timeout_ms() == 15000
    assert store.cycle_timings() == CycleTimings()
    assert store.text_model() == "gemini-2.5-flash"
    assert store.speech_model() == "gemini-2.5-flash-preview-tts"
    assert store.voice_name() == "Kore"


def test_bundled_config_matches_defaults():
    store = ConfigStore()
    assert store.path.name == "config.yaml"
    assert store.source_language() == "de-DE"
    assert store.cycle_timings() == CycleTimings()


def test_values_are_read(tmp_path):
    store = _write(tmp_path, {
        "source_language": "fr-FR",
        "target_language": "en-US",
        "playback_rates": [0.5, "1.0", "fast", -2],
        "default_rate": 0.5,
        "sync_interval_ms": 33,
        "cycle": {"intro_rate": 0.7, "settle_ms": 250, "dwell_ms": 3000},
        "models": {"voice": "Puck"},
    })

    assert store.source_language() == "fr-FR"
    assert store.target_language() == "en-US"
    assert store.playback_rates() == [0.5, 1.0]
    assert store.default_rate() == 0.5
    assert store.sync_interval_ms() == 33
    t = store.cycle_timings()
    assert t.intro_rate == pytest.approx(0.7)
    assert t.translation_rate == pytest.approx(1.0)
    assert t.settle_ms == 250
    assert t.dwell_ms == 3000
    assert store.voice_name() == "Puck"
    assert store.text_model() == "gemini-2.5-flash"


def test_nested_sections_of_wrong_type_are_ignored(tmp_path):
    store = _write(tmp_path, {"cycle": "fast", "models": [1, 2]})
    assert store.cycle_timings() == CycleTimings()
    assert store.voice_name() == "Kore"


@pytest.mark.parametrize("value", [0, -5, "soon", True])
def test_bad_intervals_fall_back(tmp_path, value):
    store = _write(tmp_path, {"sync_interval_ms": value, "speech_timeout_ms": value})
    assert store.sync_interval_ms() == 16
    assert store.speech_timeout_ms() == 15000


def test_broken_yaml_is_ignored(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text("source_language: [unclosed\n", encoding="utf-8")
    store = ConfigStore(str(p))
    assert store.load() == {}
    assert store.source_language() == "de-DE"


def test_non_mapping_document_is_ignored(tmp_path):
    store = _write(tmp_path, ["a", "b"])
    assert store.load() == {}
