from __future__ import annotations
from typing import Iterable, Literal, Optional, TypeVar, Generator
import sys
from tqdm import tqdm


class ProgressReporter:
    """
    An abstract class representing an object that reports the
    progress of a pipeline step, or of a corpus evaluation.
    """

    def start_(self, total: Optional[int]):
        """Method called at start time."""
        self.total = total

    def update_progress_(self, added_progress: int):
        """Update progress."""
        raise NotImplementedError

    def update_message_(self, message: str):
        """Update reporter current message."""
        pass

    def close_(self):
        """Method called when the reported task is over."""
        pass

    def get_subreporter(self) -> ProgressReporter:
        """Get the subreporter corresponding to that reporter."""
        raise NotImplementedError


class NoopProgressReporter(ProgressReporter):
    def update_progress_(self, added_progress: int):
        pass

    def get_subreporter(self) -> ProgressReporter:
        return NoopProgressReporter()


class TQDMSubProgressReporter(ProgressReporter):
    def __init__(self, reporter: TQDMProgressReporter) -> None:
        super().__init__()
        self.reporter = reporter
        self.progress = 0

    def start_(self, total: Optional[int]):
        super().start_(total)
        self.progress = 0

    def update_progress_(self, added_progress: int):
        self.progress += added_progress
        self.reporter.tqdm.set_postfix(step=f"({self.progress}/{self.total})")

    def update_message_(self, message: str):
        self.reporter.tqdm.set_postfix(
            step=f"({self.progress}/{self.total})", message=message
        )

    def get_subreporter(self) -> ProgressReporter:
        return NoopProgressReporter()


class TQDMProgressReporter(ProgressReporter):
    def __init__(self, desc: Optional[str] = None) -> None:
        super().__init__()
        self.desc = desc

    def start_(self, total: Optional[int]):
        super().start_(total)
        self.tqdm = tqdm(total=total, desc=self.desc)

    def update_progress_(self, added_progress: int):
        self.tqdm.update(added_progress)

    def update_message_(self, message: str):
        self.tqdm.set_description_str(message)

    def close_(self):
        self.tqdm.close()

    def get_subreporter(self) -> ProgressReporter:
        return TQDMSubProgressReporter(self)


T = TypeVar("T")


def progress_(
    progress_reporter: ProgressReporter,
    it: Iterable[T],
    total: Optional[int] = None,
) -> Generator[T, None, None]:
    if total is None and hasattr(it, "__len__"):
        total = len(it)  # type: ignore
    progress_reporter.start_(total)
    try:
        for elt in it:
            progress_reporter.update_progress_(1)
            yield elt
    finally:
        progress_reporter.close_()


def get_progress_reporter(
    name: Optional[Literal["tqdm"]], desc: Optional[str] = None
) -> ProgressReporter:
    if name is None:
        return NoopProgressReporter()
    if name == "tqdm":
        return TQDMProgressReporter(desc)
    print(f"[warning] unknown progress reporter: {name}", file=sys.stderr)
    return NoopProgressReporter()
