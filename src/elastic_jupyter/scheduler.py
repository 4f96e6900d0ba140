"""A level-triggered key queue driving the reconcilers.

In a cluster kopf schedules the reconcilers. This queue gives the same
guarantees in-process: distinct keys are reconciled concurrently, one key is
never reconciled twice at the same time, and a requested requeue is honoured
after its delay.
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor

from .constants import LOGGER_NAME
from .controllers.reconciler import ReconcileResult, Reconciler
from .models.kinds import ResourceKind
from .models.resources import ObjectKey
from .storage.memory import InMemoryStore

logger = logging.getLogger(LOGGER_NAME)

QueueKey = tuple[str, ObjectKey]


class Scheduler:
    def __init__(
        self,
        reconcilers: Mapping[str, Reconciler],
        workers: int = 4,
        error_delay: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.reconcilers = reconcilers
        self.workers = workers
        self.error_delay = error_delay
        self.clock = clock
        self.sleep = sleep
        self._queue: dict[QueueKey, float] = {}
        self._lock = threading.Lock()

    def enqueue(self, kind: str, key: ObjectKey, delay: float = 0.0) -> None:
        """Schedule a reconcile of ``key``; an earlier pending schedule wins."""
        if kind not in self.reconcilers:
            return
        due = self.clock() + delay
        with self._lock:
            current = self._queue.get((kind, key))
            if current is None or due < current:
                self._queue[(kind, key)] = due

    def subscribe(self, store: InMemoryStore) -> None:
        """Enqueue every spec object the store reports as changed."""

        def on_change(kind: ResourceKind, namespace: str, name: str) -> None:
            self.enqueue(kind.kind, ObjectKey(namespace, name))

        store.watch(on_change)

    def pending(self) -> list[QueueKey]:
        with self._lock:
            return sorted(self._queue)

    def _pop_due(self) -> list[QueueKey]:
        now = self.clock()
        with self._lock:
            due = sorted(k for k, at in self._queue.items() if at <= now)
            for k in due:
                del self._queue[k]
        return due

    def _next_delay(self) -> float | None:
        with self._lock:
            if not self._queue:
                return None
            return max(0.0, min(self._queue.values()) - self.clock())

    def _handle(self, kind: str, key: ObjectKey, result: ReconcileResult) -> None:
        if result.requeue_after is not None:
            self.enqueue(kind, key, result.requeue_after)
        elif result.retryable:
            self.enqueue(kind, key, self.error_delay)
        elif result.error is not None:
            logger.warning(f"{kind} {key} needs a spec change: {result.error}")

    def run_until_idle(self, max_rounds: int = 1000) -> list[tuple[str, ObjectKey, ReconcileResult]]:
        """Process the queue until it is empty; returns every reconcile performed."""
        history: list[tuple[str, ObjectKey, ReconcileResult]] = []
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            for _ in range(max_rounds):
                batch = self._pop_due()
                if not batch:
                    delay = self._next_delay()
                    if delay is None:
                        break
                    self.sleep(delay)
                    continue

                futures = [(kind, key, pool.submit(self.reconcilers[kind].reconcile, key)) for kind, key in batch]
                for kind, key, future in futures:
                    result = future.result()
                    history.append((kind, key, result))
                    self._handle(kind, key, result)
            else:
                logger.warning(f"Scheduler stopped after {max_rounds} rounds with {len(self.pending())} key(s) queued")
        return history
