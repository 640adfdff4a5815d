"""Command-line entry point for the guided-reading companion.

Loads a text, asks the language service for its vocabulary and segments,
then either reads it aloud with a logged highlight (`--read`), runs the
vocabulary cycle (`--session`), or just lists the vocabulary.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from guided_reader.controllers.reader_controller import ReaderController, create_reader
from guided_reader.domain.enums import PlaybackStatus, SessionPhase

logger = logging.getLogger("guided_reader")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read along with synthesized audio and drill its vocabulary.")
    parser.add_argument("--text", required=True, help="UTF-8 text file to study")
    parser.add_argument("--config", default=None, help="YAML config (default: config.yaml at project root)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--read", action="store_true", help="generate audio and follow the highlight")
    mode.add_argument("--session", action="store_true", help="run the timed vocabulary cycle")
    parser.add_argument("--rate", type=float, default=None, help="read-along speed, one of the configured playback_rates")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def _wire_console(reader: ReaderController, app: QApplication, args: argparse.Namespace) -> None:
    segments = {"list": []}

    def _on_segments(segs: list) -> None:
        segments["list"] = segs

    def _on_active(index) -> None:
        if index is None:
            return
        segs = segments["list"]
        if 0 <= index < len(segs):
            logger.info("> %s", segs[index].text)

    def _on_phase(phase, index: int) -> None:
        item = reader.session.current_item()
        if item is None:
            return
        if phase is SessionPhase.INTRO:
            logger.info("[%d] %s", index + 1, item.source_word)
        elif phase is SessionPhase.TRANSLATING:
            logger.info("[%d] %s = %s", index + 1, item.source_word, item.translation)

    def _on_playing(playing: bool) -> None:
        if not playing and reader.playback.state().status is not PlaybackStatus.PAUSED:
            QTimer.singleShot(0, app.quit)

    def _on_loaded(loading: bool, message: str) -> None:
        if loading:
            logger.info(message)
            return
        if args.session:
            reader.start_session()
            if not reader.session.is_active():
                app.quit()
        elif args.read:
            reader.play()
        else:
            for item in reader.vocabulary():
                print("{}\t{}".format(item.source_word, item.translation))
            QTimer.singleShot(0, app.quit)

    reader.error_reported.connect(lambda msg: logger.error(msg))
    reader.playback.segments_changed.connect(_on_segments)
    reader.playback.active_segment_changed.connect(_on_active)
    reader.playback.loading_changed.connect(lambda loading, msg: logger.info(msg) if loading else None)
    reader.session.phase_changed.connect(_on_phase)
    reader.session.finished.connect(app.quit)
    reader.loader.loading_changed.connect(_on_loaded)
    if args.read:
        reader.playback.playing_changed.connect(_on_playing)
        reader.playback.error_reported.connect(lambda _msg: QTimer.singleShot(0, app.quit))


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    text_path = Path(args.text)
    try:
        source_text = text_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Cannot read %s: %s", text_path, e)
        return 2
    if not source_text.strip():
        logger.error("%s is empty", text_path)
        return 2

    app = QApplication.instance() or QApplication(sys.argv[:1])
    reader = create_reader(source_text, config_path=args.config)
    if args.rate is not None:
        if args.rate not in reader.playback_rates():
            logger.error("Unsupported rate %s (choose from %s)", args.rate, reader.playback_rates())
            reader.shutdown()
            return 2
        reader.set_rate(args.rate)
    _wire_console(reader, app, args)
    reader.load()
    try:
        return app.exec()
    finally:
        reader.shutdown()


if __name__ == "__main__":
    sys.exit(main())
