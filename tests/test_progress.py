from typing import List, Optional
import threading
from maillon.pipeline.progress import ProgressReporter, progress_
from maillon.pipeline.corefs import metrics


class RecordingProgressReporter(ProgressReporter):
    def __init__(self) -> None:
        self.events: List[str] = []

    def start_(self, total: Optional[int]):
        super().start_(total)
        self.events.append("start")

    def update_progress_(self, added_progress: int):
        self.events.append("update")

    def close_(self):
        self.events.append("close")


def test_progress_closes_reporter():
    reporter = RecordingProgressReporter()
    assert list(progress_(reporter, [1, 2])) == [1, 2]
    assert reporter.events == ["start", "update", "update", "close"]
    assert reporter.total == 2


def test_progress_closes_reporter_on_early_exit():
    reporter = RecordingProgressReporter()
    it = progress_(reporter, [1, 2, 3])
    for elt in it:
        if elt == 1:
            break
    it.close()
    assert reporter.events[-1] == "close"


def test_cancelled_scoring_closes_reporter(monkeypatch):
    reporter = RecordingProgressReporter()
    monkeypatch.setattr(
        metrics, "get_progress_reporter", lambda name, desc=None: reporter
    )
    cancel_event = threading.Event()
    cancel_event.set()
    documents = [([[(0, 1), (2, 3)]], [[(0, 1), (2, 3)]])] * 3
    scores = metrics.score_coref_documents(documents, cancel_event=cancel_event)
    assert scores == []
    assert reporter.events.count("close") == 1
