"""The reconcile loop shared by every managed kind.

One ``Reconciler`` drives one kind of spec object towards its generated
children. What differs between kinds (how to resolve references and what to
generate) is passed in as ``KindHandlers``.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pydantic
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..config import OperatorSettings
from ..constants import LOGGER_NAME
from ..exceptions import ConflictError, NotFoundError, PlatformIOError, ValidationError
from ..models.kinds import ResourceKind
from ..models.resources import ObjectKey, Resource
from ..models.workload import Child
from ..ownership import adopt, controller_uid
from ..resolver import Resolver
from ..storage.base import ObjectStore
from .status import Phase, StatusReporter

# Set up logger
logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class KindHandlers:
    """What the reconcile loop needs to know about one kind."""

    resource: ResourceKind
    model: type[Resource]
    resolve: Callable[[Resolver, Any], Any]
    generate: Callable[[Any, Any], list[Child]]


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconcile pass.

    ``requeue_after`` asks the scheduler to come back later; ``error`` is set
    for validation failures (absorbed into status, not to be retried) and for
    exhausted platform failures (to be retried by the scheduler).
    """

    phase: Phase | None = None
    requeue_after: float | None = None
    error: Exception | None = None

    @property
    def retryable(self) -> bool:
        return self.requeue_after is not None or isinstance(self.error, (ConflictError, PlatformIOError))


def matches(desired: Any, live: Any) -> bool:
    """Whether ``live`` carries every value set in ``desired``.

    Keys only found on ``live``, such as defaults filled in by the API server,
    are ignored. Lists must have the same length and ``None`` matches anything.
    """
    if desired is None:
        return True
    if isinstance(desired, dict):
        live = live if isinstance(live, dict) else {}
        return all(matches(value, live.get(key)) for key, value in desired.items())
    if isinstance(desired, (list, tuple)):
        live = live if isinstance(live, (list, tuple)) else []
        return len(desired) == len(live) and all(matches(d, o) for d, o in zip(desired, live))
    return desired == live


def compute_drift(desired: Child, live: dict[str, Any]) -> dict[str, tuple[Any, Any]]:
    """Fields of ``desired`` that differ on the live object, as (live, desired) pairs."""
    observed = type(desired).from_manifest(live).drift_fields()
    return {
        field: (observed.get(field), value)
        for field, value in desired.drift_fields().items()
        if not matches(value, observed.get(field))
    }


class Reconciler:
    """Fetch, resolve, generate, diff and apply for one kind of spec object."""

    def __init__(
        self,
        store: ObjectStore,
        handlers: KindHandlers,
        settings: OperatorSettings,
        reporter: StatusReporter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.handlers = handlers
        self.settings = settings
        self.resolver = Resolver(store)
        self.reporter = reporter or StatusReporter(store, handlers.resource)
        self.sleep = sleep
        self._conflict_wait = wait_random(0, settings.conflict_jitter_seconds)
        self._backoff_wait = wait_exponential(
            multiplier=settings.api_retry_initial_seconds, max=settings.api_retry_max_seconds
        )

    @property
    def kind(self) -> ResourceKind:
        return self.handlers.resource

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, ConflictError):
            return self._conflict_wait(retry_state)
        return self._backoff_wait(retry_state)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(f"Retrying {self.kind} reconcile after attempt {retry_state.attempt_number}: {error}")

    def reconcile(self, key: ObjectKey) -> ReconcileResult:
        """Run one reconcile pass for ``key``.

        Conflicts and platform failures restart the whole pass, bounded by
        ``api_retry_attempts``; the last failure is returned, not raised.
        """
        retrying = Retrying(
            retry=retry_if_exception_type((ConflictError, PlatformIOError)),
            stop=stop_after_attempt(self.settings.api_retry_attempts),
            wait=self._wait,
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    result = self._reconcile_once(key)
        except (ConflictError, PlatformIOError) as e:
            logger.error(f"Failed to reconcile {self.kind} {key}: {e}")
            return ReconcileResult(error=e)
        return result

    def _reconcile_once(self, key: ObjectKey) -> ReconcileResult:
        body = self.store.get(self.kind, key.namespace, key.name)
        if body is None:
            logger.info(f"{self.kind} {key} not found, assuming it was deleted")
            return ReconcileResult()

        generation = (body.get("metadata") or {}).get("generation")
        try:
            resource = self.handlers.model.from_body(body)
        except pydantic.ValidationError as e:
            logger.warning(f"Invalid spec for {self.kind} {key}: {e}")
            self.reporter.report(key, body.get("status") or {}, Phase.ERROR, f"Invalid spec: {e}", generation)
            return ReconcileResult(phase=Phase.ERROR, error=ValidationError(str(e)))

        status = resource.status
        try:
            references = self.handlers.resolve(self.resolver, resource)
            children = self.handlers.generate(resource, references)
        except NotFoundError as e:
            message = f"waiting on reference {e.kind} {e.namespace}/{e.name}"
            logger.warning(f"{self.kind} {key} is {message}")
            self.reporter.report(key, status, Phase.PENDING, message, generation)
            return ReconcileResult(phase=Phase.PENDING, requeue_after=self.settings.reference_retry_seconds)
        except ValidationError as e:
            logger.warning(f"Invalid {self.kind} {key}: {e}")
            self.reporter.report(key, status, Phase.ERROR, str(e), generation)
            return ReconcileResult(phase=Phase.ERROR, error=e)

        try:
            status = self._apply(resource, children, status, generation)
        except ValidationError as e:
            logger.warning(f"Cannot apply {self.kind} {key}: {e}")
            self.reporter.report(key, status, Phase.ERROR, str(e), generation)
            return ReconcileResult(phase=Phase.ERROR, error=e)

        self.reporter.report(key, status, Phase.READY, f"{len(children)} child object(s) up to date", generation)
        return ReconcileResult(phase=Phase.READY)

    def _apply(
        self, resource: Resource, children: list[Child], status: dict[str, Any], generation: int | None
    ) -> dict[str, Any]:
        """Create missing children and update drifted ones; returns the status written so far."""
        for child in children:
            desired = adopt(child.to_manifest(), resource)
            live = self.store.get(child.KIND, child.namespace, child.name)

            if live is None:
                status = self.reporter.report(
                    resource.key, status, Phase.CREATING, f"creating {child.KIND} {child.key}", generation
                )
                self.store.create(child.KIND, desired)
                logger.info(f"Created {child.KIND} {child.key} for {self.kind} {resource.key}")
                continue

            owner = controller_uid(live)
            if owner is not None and owner != resource.metadata.uid:
                raise ValidationError(f"{child.KIND} {child.key} is controlled by another object")

            drift = compute_drift(type(child).from_manifest(desired), live)
            if not drift and owner is not None:
                logger.debug(f"{child.KIND} {child.key} is up to date")
                continue

            status = self.reporter.report(
                resource.key, status, Phase.UPDATING, f"updating {child.KIND} {child.key}", generation
            )
            self.store.replace(child.KIND, child.prepare_update(desired, live))
            logger.info(f"Updated {child.KIND} {child.key} for {self.kind} {resource.key}: {sorted(drift)}")
        return status
