from guided_reader.controllers.content_loader import ContentLoader
from guided_reader.domain.segments import Segment, VocabularyItem
from guided_reader.errors import ExternalServiceFailure


class FakeService:
    def __init__(self, vocabulary=None, segments=None, fail=()):
        self.vocabulary = vocabulary or [VocabularyItem("Hund", "куче")]
        self.segments = segments or [Segment("Hund", True, "куче"), Segment(".", False)]
        self.fail = set(fail)
        self.texts = []

    def get_vocabulary(self, text):
        self.texts.append(text)
        if "vocabulary" in self.fail:
            raise ExternalServiceFailure("vocabulary", "quota")
        return self.vocabulary

    def get_segments(self, text):
        if "segments" in self.fail:
            raise ExternalServiceFailure("segments", "timeout")
        return self.segments


def _record(loader):
    seen = {"loading": [], "vocab": [], "segments": [], "errors": []}
    loader.loading_changed.connect(lambda on, _msg: seen["loading"].append(on))
    loader.vocabulary_loaded.connect(seen["vocab"].append)
    loader.segments_loaded.connect(seen["segments"].append)
    loader.error_reported.connect(seen["errors"].append)
    return seen


def test_both_results_arrive_under_one_loading_state(qtbot, immediate_runner):
    service = FakeService()
    loader = ContentLoader(service=service, runner=immediate_runner)
    seen = _record(loader)

    loader.load("Der Hund.")

    assert service.texts == ["Der Hund."]
    assert seen["loading"] == [True, False]
    assert seen["vocab"] == [service.vocabulary]
    assert seen["segments"] == [service.segments]
    assert seen["errors"] == []
    assert not loader.is_loading()


def test_loading_clears_only_after_both_settle(qtbot, manual_runner):
    loader = ContentLoader(service=FakeService(), runner=manual_runner)
    seen = _record(loader)

    loader.load("Der Hund.")
    manual_runner.complete()
    assert loader.is_loading()
    assert seen["loading"] == [True]

    manual_runner.complete()
    assert not loader.is_loading()
    assert seen["loading"] == [True, False]


def test_vocabulary_failure_does_not_block_segments(qtbot, immediate_runner):
    loader = ContentLoader(service=FakeService(fail={"vocabulary"}), runner=immediate_runner)
    seen = _record(loader)

    loader.load("Der Hund.")

    assert seen["vocab"] == []
    assert len(seen["segments"]) == 1
    assert len(seen["errors"]) == 1
    assert "quota" in seen["errors"][0]
    assert seen["loading"] == [True, False]


def test_segment_failure_does_not_block_vocabulary(qtbot, immediate_runner):
    loader = ContentLoader(service=FakeService(fail={"segments"}), runner=immediate_runner)
    seen = _record(loader)

    loader.load("Der Hund.")

    assert len(seen["vocab"]) == 1
    assert seen["segments"] == []
    assert len(seen["errors"]) == 1


def test_newer_load_supersedes_older_results(qtbot, manual_runner):
    loader = ContentLoader(service=FakeService(), runner=manual_runner)
    seen = _record(loader)

    loader.load("first")
    loader.load("second")
    assert len(manual_runner.pending) == 4

    # results of the first load arrive late and are dropped
    manual_runner.complete(0)
    manual_runner.complete(0)
    assert seen["vocab"] == []
    assert seen["segments"] == []
    assert loader.is_loading()

    manual_runner.complete(0)
    manual_runner.complete(0)
    assert len(seen["vocab"]) == 1
    assert len(seen["segments"]) == 1
    assert seen["loading"] == [True, True, False]
