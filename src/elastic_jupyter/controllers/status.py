"""Status reporting on the spec objects."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ..constants import LOGGER_NAME
from ..models.kinds import ResourceKind
from ..models.resources import ObjectKey
from ..storage.base import ObjectStore

# Set up logger
logger = logging.getLogger(LOGGER_NAME)

CONDITION_READY = "Ready"


class Phase(StrEnum):
    PENDING = "Pending"
    CREATING = "Creating"
    READY = "Ready"
    UPDATING = "Updating"
    ERROR = "Error"


def utcnow() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


def build_condition(phase: Phase, message: str, previous: dict[str, Any] | None, now: str) -> dict[str, Any]:
    """The canonical ``Ready`` condition for ``phase``.

    ``lastTransitionTime`` only moves when the status or the reason changes.
    """
    status = "True" if phase is Phase.READY else "False"
    unchanged = previous is not None and previous.get("status") == status and previous.get("reason") == phase
    return {
        "type": CONDITION_READY,
        "status": status,
        "reason": str(phase),
        "message": message,
        "lastTransitionTime": previous["lastTransitionTime"] if unchanged and previous else now,
    }


class StatusReporter:
    """Writes phase and conditions onto the status of a spec object."""

    def __init__(self, store: ObjectStore, kind: ResourceKind, clock: Callable[[], str] = utcnow) -> None:
        self.store = store
        self.kind = kind
        self.clock = clock

    def report(
        self,
        key: ObjectKey,
        current: dict[str, Any],
        phase: Phase,
        message: str,
        generation: int | None = None,
    ) -> dict[str, Any]:
        """Write the status for ``phase`` unless ``current`` already says the same.

        Conditions of other types are kept. Returns the status now on the object.
        """
        conditions = list(current.get("conditions") or [])
        previous = next((c for c in conditions if c.get("type") == CONDITION_READY), None)
        condition = build_condition(phase, message, previous, self.clock())
        others = [c for c in conditions if c.get("type") != CONDITION_READY]

        status = {
            "phase": str(phase),
            "message": message,
            "observedGeneration": generation,
            "conditions": [*others, condition],
        }
        if all(current.get(field) == value for field, value in status.items()):
            return current

        self.store.patch_status(self.kind, key.namespace, key.name, status)
        logger.info(f"{self.kind} {key} is {phase}: {message}")
        return {**current, **status}
