"""
Cancellable handle for an in-flight operation.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, Tuple

from filedav.lib import error

log = logging.getLogger(__name__)

Outcome = Tuple[Any, Optional[error.OperationError]]


class OperationHandle:
    """
    Returned by every operation.  The completion is called exactly once,
    with ``(value, error)`` - either the outcome of the operation or, if
    cancel() wins the race, ``(None, CancelledError)``.

    The completion runs on a worker thread when the operation finishes,
    on the calling thread when the operation is cancelled, and on the
    calling thread before the operation returns when it fails local
    validation.

    Example:
        handle = client.download("a.txt", account, password)
        data, err = handle.result(timeout=10)
    """

    def __init__(
        self,
        completion: Optional[Callable[[Any, Optional[error.OperationError]], None]] = None,
        url: Optional[str] = None,
    ) -> None:
        self.url = url
        self._completion = completion
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._resolved = False
        self._cancelled = False
        self._outcome: Outcome = (None, None)
        self._future: Optional[Future] = None

    @classmethod
    def failed(
        cls,
        err: error.OperationError,
        completion: Optional[Callable[[Any, Optional[error.OperationError]], None]] = None,
    ) -> "OperationHandle":
        """A handle that has already completed with err"""
        handle = cls(completion)
        handle.resolve(None, err)
        return handle

    def attach(self, future: Future) -> None:
        with self._lock:
            self._future = future

    def resolve(self, value: Any, err: Optional[error.OperationError]) -> bool:
        """
        Deliver the outcome.  Returns False, and does nothing, if the
        handle was already resolved.
        """
        return self._resolve((value, err), cancelled=False)

    def _resolve(self, outcome: Outcome, cancelled: bool) -> bool:
        with self._lock:
            if self._resolved:
                return False
            self._resolved = True
            self._cancelled = cancelled
            self._outcome = outcome
        try:
            if self._completion is not None:
                self._completion(*outcome)
        except Exception:
            log.error(f"completion for {self.url} raised", exc_info=True)
        finally:
            self._finished.set()
        return True

    def cancel(self) -> bool:
        """
        Cancel the operation.  Safe to call at any time and any number of
        times; returns True only for the call that actually cancelled.
        An HTTP request already on the wire is not interrupted, but its
        outcome is discarded.
        """
        with self._lock:
            if self._resolved:
                return False
            future = self._future
        if future is not None:
            future.cancel()
        cancelled = self._resolve((None, error.CancelledError(url=self.url)), cancelled=True)
        if cancelled:
            log.debug(f"cancelled operation on {self.url}")
        return cancelled

    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def done(self) -> bool:
        """True once the completion has run"""
        return self._finished.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._finished.wait(timeout)

    def result(self, timeout: Optional[float] = None) -> Outcome:
        """
        Block until the operation is done and return ``(value, error)``.
        Raises TimeoutError if timeout passes first.
        """
        if not self._finished.wait(timeout):
            raise TimeoutError(f"operation on {self.url} still running")
        return self._outcome

    def __repr__(self) -> str:
        if self.cancelled():
            state = "cancelled"
        elif self.done():
            state = "done"
        else:
            state = "pending"
        return "<OperationHandle %s %s>" % (self.url, state)
