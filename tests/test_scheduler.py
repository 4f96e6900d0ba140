"""Tests for the in-process reconcile queue."""

import threading
import unittest
from unittest.mock import Mock

from elastic_jupyter.config import OperatorSettings
from elastic_jupyter.controllers.reconciler import ReconcileResult
from elastic_jupyter.controllers.registry import build_reconcilers
from elastic_jupyter.controllers.status import Phase
from elastic_jupyter.exceptions import PlatformIOError, ValidationError
from elastic_jupyter.models.kinds import DEPLOYMENT, GATEWAY, KERNEL, KERNEL_SPEC, KERNEL_TEMPLATE, NOTEBOOK
from elastic_jupyter.models.resources import ObjectKey
from elastic_jupyter.scheduler import Scheduler
from elastic_jupyter.storage.memory import InMemoryStore


class FakeClock:
    """Monotonic clock that only moves when slept on."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def body(name: str, spec: dict) -> dict:
    return {"metadata": {"name": name, "namespace": "default"}, "spec": spec}


class TestSchedulerConvergence(unittest.TestCase):
    """Test cases for driving the reconcilers against the in-memory store."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.store = InMemoryStore()
        settings = OperatorSettings(
            reference_retry_seconds=5.0, api_retry_initial_seconds=0.0, conflict_jitter_seconds=0.0
        )
        self.scheduler = Scheduler(
            build_reconcilers(self.store, settings), clock=self.clock, sleep=self.clock.sleep
        )
        self.scheduler.subscribe(self.store)

    def test_notebook_before_gateway(self):
        """Test that a notebook created before its gateway converges once the gateway exists."""
        self.store.create(NOTEBOOK, body("nb", {"gateway": {"name": "gateway"}}))

        history = self.scheduler.run_until_idle(max_rounds=1)

        self.assertEqual(history[0][2].phase, Phase.PENDING)
        self.assertEqual(self.scheduler.pending(), [("JupyterNotebook", ObjectKey("default", "nb"))])

        self.store.create(GATEWAY, body("gateway", {}))
        history = self.scheduler.run_until_idle()

        self.assertEqual(
            [(kind, result.phase) for kind, _, result in history],
            [("JupyterGateway", Phase.READY), ("JupyterNotebook", Phase.READY)],
        )
        self.assertEqual(self.clock.now, 5.0)
        self.assertEqual(self.scheduler.pending(), [])
        self.assertIsNotNone(self.store.get(DEPLOYMENT, "default", "nb"))
        self.assertIsNotNone(self.store.get(DEPLOYMENT, "default", "gateway"))

    def test_kernel_chain_in_reverse_order(self):
        """Test that a kernel converges when its spec and template arrive later."""
        self.store.create(KERNEL, body("k1", {"kernelSpec": {"name": "python"}}))
        self.scheduler.run_until_idle(max_rounds=1)
        self.store.create(KERNEL_SPEC, body("python", {"template": {"name": "base"}}))
        self.scheduler.run_until_idle(max_rounds=1)
        self.store.create(KERNEL_TEMPLATE, body("base", {"template": {"spec": {"containers": [{"image": "py"}]}}}))

        self.scheduler.run_until_idle()

        self.assertEqual(self.scheduler.pending(), [])
        self.assertEqual(self.store.get(KERNEL, "default", "k1")["status"]["phase"], "Ready")
        self.assertEqual(self.store.get(KERNEL_SPEC, "default", "python")["status"]["phase"], "Ready")
        self.assertIsNotNone(self.store.get(DEPLOYMENT, "default", "k1"))

    def test_invalid_objects_are_not_requeued(self):
        self.store.create(NOTEBOOK, body("nb", {}))

        history = self.scheduler.run_until_idle()

        self.assertEqual(len(history), 1)
        self.assertEqual(history[0][2].phase, Phase.ERROR)
        self.assertEqual(self.scheduler.pending(), [])


class TestSchedulerQueue(unittest.TestCase):
    """Test cases for queue semantics."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.reconciler = Mock()
        self.reconciler.reconcile.return_value = ReconcileResult(phase=Phase.READY)
        self.scheduler = Scheduler(
            {"JupyterNotebook": self.reconciler}, error_delay=30.0, clock=self.clock, sleep=self.clock.sleep
        )

    def test_duplicate_keys_are_collapsed(self):
        """Test that a key queued several times is reconciled once."""
        key = ObjectKey("default", "nb")
        self.scheduler.enqueue("JupyterNotebook", key, delay=10.0)
        self.scheduler.enqueue("JupyterNotebook", key)
        self.scheduler.enqueue("JupyterNotebook", key, delay=20.0)

        self.assertEqual(len(self.scheduler.pending()), 1)
        self.scheduler.run_until_idle()

        self.reconciler.reconcile.assert_called_once_with(key)
        self.assertEqual(self.clock.now, 0.0)

    def test_unknown_kind_is_ignored(self):
        self.scheduler.enqueue("Deployment", ObjectKey("default", "nb"))

        self.assertEqual(self.scheduler.pending(), [])

    def test_distinct_keys_run_concurrently(self):
        """Test that two keys are reconciled at the same time."""
        barrier = threading.Barrier(2, timeout=5)

        def reconcile(key):
            barrier.wait()
            return ReconcileResult(phase=Phase.READY)

        self.reconciler.reconcile.side_effect = reconcile
        self.scheduler.enqueue("JupyterNotebook", ObjectKey("default", "a"))
        self.scheduler.enqueue("JupyterNotebook", ObjectKey("default", "b"))

        history = self.scheduler.run_until_idle()

        self.assertEqual(len(history), 2)
        self.assertFalse(barrier.broken)

    def test_platform_errors_are_requeued(self):
        """Test that an exhausted platform failure comes back after the error delay."""
        self.reconciler.reconcile.side_effect = [
            ReconcileResult(error=PlatformIOError("unavailable")),
            ReconcileResult(phase=Phase.READY),
        ]
        self.scheduler.enqueue("JupyterNotebook", ObjectKey("default", "nb"))

        history = self.scheduler.run_until_idle()

        self.assertEqual(len(history), 2)
        self.assertEqual(self.clock.now, 30.0)

    def test_validation_errors_are_dropped(self):
        self.reconciler.reconcile.return_value = ReconcileResult(
            phase=Phase.ERROR, error=ValidationError("no gateway and template applied")
        )
        self.scheduler.enqueue("JupyterNotebook", ObjectKey("default", "nb"))

        history = self.scheduler.run_until_idle()

        self.assertEqual(len(history), 1)
        self.assertEqual(self.scheduler.pending(), [])


if __name__ == "__main__":
    unittest.main()
