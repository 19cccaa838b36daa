"""Worker pool draining the work queue into the hub reconciler."""

from __future__ import annotations

import contextvars
import logging
import threading
from typing import Any

from .handlers.watches import Request
from .utils.context import new_correlation_id, with_correlation_id
from .utils.errors import OperatorError, sanitize_exception
from .utils.workqueue import WorkQueue

logger = logging.getLogger(__name__)


class Controller:
    """Runs reconciles for queued hub requests on a fixed number of threads.

    The queue serializes requests per hub, so the reconciler never sees two
    concurrent passes for the same identity.
    """

    def __init__(self, reconciler: Any, queue: WorkQueue, workers: int = 4) -> None:
        self.reconciler = reconciler
        self.queue = queue
        self.workers = workers
        self._threads: list[threading.Thread] = []

    def enqueue(self, request: Request) -> None:
        self.queue.add(request)

    def process_next(self, timeout: float | None = None) -> bool:
        """Reconcile one request. Returns False when the queue is shut down or timed out."""
        request = self.queue.get(timeout=timeout)
        if request is None:
            return False
        namespace, name = request
        try:
            with with_correlation_id(new_correlation_id()):
                result = self.reconciler.reconcile(namespace, name)
        except OperatorError as e:
            delay = self.queue.add_rate_limited(request)
            logger.warning(f"Reconcile of {namespace}/{name} failed, retrying in {delay}s: {sanitize_exception(e)}")
        except Exception:
            delay = self.queue.add_rate_limited(request)
            logger.exception(f"Unexpected error reconciling {namespace}/{name}, retrying in {delay}s")
        else:
            self.queue.forget(request)
            if result.requeue:
                self.queue.add(request)
            elif result.requeue_after is not None:
                self.queue.add_after(request, result.requeue_after)
        finally:
            self.queue.done(request)
        return True

    def _run(self) -> None:
        while self.process_next():
            pass

    def start(self) -> None:
        """Start the worker threads, each in a copy of the caller's context."""
        for idx in range(self.workers):
            ctx = contextvars.copy_context()
            thread = threading.Thread(target=ctx.run, args=(self._run,), name=f"reconcile-worker-{idx}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.info(f"Started {self.workers} reconcile workers")

    def stop(self, timeout: float = 10.0) -> None:
        self.queue.shutdown()
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()

    def ready(self) -> bool:
        return bool(self._threads) and all(thread.is_alive() for thread in self._threads)
