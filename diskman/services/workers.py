import logging
from typing import Any, Callable, List

from PySide6.QtCore import QObject, QThread, Signal, Slot

from diskman.services.http.client import Err, TransportError

logger = logging.getLogger(__name__)


def _guarded(fn: Callable[[], Any]) -> Any:
    try:
        return fn()
    except Exception as e:  # noqa: BLE001
        logger.exception("Background call raised unexpectedly")
        return Err(TransportError(e))


class _CallWorker(QObject):
    finished = Signal(object)

    def __init__(self, fn: Callable[[], Any]):
        super().__init__()
        self._fn = fn

    def run(self):
        self.finished.emit(_guarded(self._fn))


class _Job(QObject):
    """GUI-thread side of one background call.

    Its slots are connected to signals emitted from the worker thread, so Qt
    queues them back onto the GUI thread.
    """

    def __init__(self, runner: "RemoteCallRunner", fn: Callable[[], Any], callback):
        super().__init__(runner)
        self._runner = runner
        self._callback = callback
        self._stopped = False
        self._released = False
        self._thread = QThread(runner)
        self.worker = _CallWorker(fn)
        self.worker.moveToThread(self._thread)

        self._thread.started.connect(self.worker.run)
        self.worker.finished.connect(self.deliver)
        self.worker.finished.connect(self._thread.quit)
        self._thread.finished.connect(self.worker.deleteLater)
        self._thread.finished.connect(self.release)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Block until the call returns; its result is discarded."""
        self._stopped = True
        self._thread.quit()
        self._thread.wait()
        self.release()

    @Slot(object)
    def deliver(self, result: Any) -> None:
        if self._stopped:
            return
        self._callback(result)

    @Slot()
    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._runner._forget(self)
        self._thread.deleteLater()
        self.deleteLater()


class RemoteCallRunner(QObject):
    """Runs blocking client calls without freezing the UI.

    With ``use_threads=False`` calls run inline and the callback fires before
    ``submit`` returns.
    """

    def __init__(self, parent: QObject | None = None, *, use_threads: bool = True):
        super().__init__(parent)
        self._use_threads = use_threads
        self._jobs: List[_Job] = []

    def submit(self, fn: Callable[[], Any], callback: Callable[[Any], None]) -> None:
        if not self._use_threads:
            callback(_guarded(fn))
            return
        job = _Job(self, fn, callback)
        self._jobs.append(job)
        job.start()

    def pending(self) -> int:
        return len(self._jobs)

    def _forget(self, job: _Job) -> None:
        if job in self._jobs:
            self._jobs.remove(job)

    def shutdown(self) -> None:
        """Wait for running calls so no thread outlives its owner.

        Each call is bounded by the client timeout.
        """
        for job in list(self._jobs):
            job.stop()
