"""
QThread base for one-shot blocking calls.

Workers carry the token of the request that started them; the owning window
drops results whose token is no longer current and retires superseded
workers without waiting on them.
"""
import logging

from PyQt6.QtCore import QThread, pyqtSignal

from src.core.errors import AppError

logger = logging.getLogger(__name__)


class TokenWorker(QThread):
    """
    Signals:
        done(token, result): Emitted with the return value of ``work()``
        failed(token, error): Emitted with the error text
    """
    done = pyqtSignal(int, object)
    failed = pyqtSignal(int, str)

    def __init__(self, *, token: int):
        super().__init__()
        self._token = token
        self._cancelled = False

    @property
    def token(self) -> int:
        """Get the worker's token for identifying responses."""
        return self._token

    def cancel(self) -> None:
        """Cancel the worker. Safe to call multiple times."""
        self._cancelled = True

    def run(self) -> None:
        try:
            result = self.work()
        except AppError as e:
            if not self._cancelled:
                self.failed.emit(self._token, str(e))
            return
        except Exception as e:
            logger.exception(f"{type(self).__name__} crashed")
            if not self._cancelled:
                self.failed.emit(self._token, str(e))
            return
        if not self._cancelled:
            self.done.emit(self._token, result)

    def work(self):
        raise NotImplementedError


class WorkerPool:
    """Keeps superseded workers alive until their threads finish."""

    def __init__(self):
        self._stale = []

    def retire(self, worker: QThread) -> None:
        if worker is None:
            return
        if not worker.isRunning():
            worker.deleteLater()
            return
        if hasattr(worker, "cancel"):
            worker.cancel()
        self._stale.append(worker)
        worker.finished.connect(lambda w=worker: self._release(w))

    def _release(self, worker: QThread) -> None:
        if worker in self._stale:
            self._stale.remove(worker)
        worker.deleteLater()

    def shutdown(self, timeout_ms: int = 3000) -> None:
        """Cancel and wait for every stale worker."""
        for worker in list(self._stale):
            worker.cancel()
            worker.wait(timeout_ms)
        self._stale.clear()
