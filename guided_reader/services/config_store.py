from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List

import yaml

from guided_reader.domain.enums import CycleTimings

logger = logging.getLogger(__name__)

DEFAULT_RATES = (0.75, 1.0, 1.25)


class ConfigStore:
    """YAML-backed, read-only configuration.

    Responsibilities:
      - Load config.yaml (UTF-8) and fall back to defaults when missing/broken
      - Provide typed helpers for languages, rates, cycle timings and models

    Notes:
      - Delays are stored in MILLISECONDS.
      - Nothing is ever written back; all runtime state is session-transient.
    """

    def __init__(self, config_path: str | None = None) -> None:
        if config_path is None:
            # <project_root>/config.yaml
            project_root = Path(__file__).resolve().parents[2]
            self._path = project_root / "config.yaml"
        else:
            self._path = Path(config_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        p = self._path
        if not p.exists():
            return {}
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config %s: %s", p, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _section(self, name: str) -> dict[str, Any]:
        d = self.load().get(name) or {}
        return d if isinstance(d, dict) else {}

    def source_language(self) -> str:
        return str(self.load().get("source_language") or "de-DE")

    def target_language(self) -> str:
        return str(self.load().get("target_language") or "bg-BG")

    def playback_rates(self) -> List[float]:
        raw = self.load().get("playback_rates")
        if not isinstance(raw, list):
            return list(DEFAULT_RATES)
        rates = []
        for v in raw:
            try:
                r = float(v)
            except (TypeError, ValueError):
                continue
            if r > 0:
                rates.append(r)
        return rates or list(DEFAULT_RATES)

    def default_rate(self) -> float:
        try:
            r = float(self.load().get("default_rate", 1.0))
        except (TypeError, ValueError):
            return 1.0
        return r if r > 0 else 1.0

    def _ival(self, key: str, default: int) -> int:
        v = self.load().get(key, default)
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0:
            return int(v)
        return int(default)

    def sync_interval_ms(self) -> int:
        return self._ival("sync_interval_ms", 16)

    def speech_timeout_ms(self) -> int:
        return self._ival("speech_timeout_ms", 15000)

    def cycle_timings(self) -> CycleTimings:
        d = self._section("cycle")
        defaults = CycleTimings()

        def _num(key: str, default: float) -> float:
            v = d.get(key, default)
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                return v
            return default

        return CycleTimings(
            intro_rate=_num("intro_rate", defaults.intro_rate),
            translation_rate=_num("translation_rate", defaults.translation_rate),
            settle_ms=int(_num("settle_ms", defaults.settle_ms)),
            dwell_ms=int(_num("dwell_ms", defaults.dwell_ms)),
        ).normalised()

    def text_model(self) -> str:
        return str(self._section("models").get("text") or "gemini-2.5-flash")

    def speech_model(self) -> str:
        return str(self._section("models").get("speech") or "gemini-2.5-flash-preview-tts")

    def voice_name(self) -> str:
        return str(self._section("models").get("voice") or "Kore")
