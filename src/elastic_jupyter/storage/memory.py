"""In-process object store.

Behaves like the API server where the reconcilers can observe it: objects get
a uid and a resource version, writes with a stale version are rejected, and
deleting an owner deletes every object whose owner references point at it.
The platform garbage collector is replaced by an explicit reverse index from
owner uid to owned objects.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..constants import LOGGER_NAME
from ..exceptions import ConflictError
from ..models.kinds import ResourceKind, kind_by_name

logger = logging.getLogger(LOGGER_NAME)

StoreKey = tuple[str, str, str]
Listener = Callable[[ResourceKind, str, str], None]


class InMemoryStore:
    """Thread-safe ``ObjectStore`` keeping objects in a dict."""

    def __init__(self) -> None:
        self._objects: dict[StoreKey, dict[str, Any]] = {}
        self._owned: defaultdict[str, set[StoreKey]] = defaultdict(set)
        self._listeners: list[Listener] = []
        self._version = 0
        self._lock = threading.RLock()

    def watch(self, listener: Listener) -> None:
        """Call ``listener(kind, namespace, name)`` after every change."""
        self._listeners.append(listener)

    def _notify(self, kind: ResourceKind, namespace: str, name: str) -> None:
        for listener in self._listeners:
            listener(kind, namespace, name)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        with self._lock:
            body = self._objects.get((kind.kind, namespace, name))
            return copy.deepcopy(body) if body is not None else None

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(body)
                for (kind_name, ns, _), body in sorted(self._objects.items())
                if kind_name == kind.kind and (namespace is None or ns == namespace)
            ]

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        body = copy.deepcopy(body)
        metadata = body.setdefault("metadata", {})
        metadata.setdefault("namespace", "default")
        key = (kind.kind, metadata["namespace"], metadata["name"])
        with self._lock:
            if key in self._objects:
                raise ConflictError(f"{kind} {key[1]}/{key[2]} already exists")
            body.setdefault("apiVersion", kind.api_version)
            body.setdefault("kind", kind.kind)
            metadata["uid"] = str(uuid.uuid4())
            metadata["resourceVersion"] = self._next_version()
            metadata["generation"] = 1
            metadata["creationTimestamp"] = datetime.now(UTC).isoformat()
            self._objects[key] = body
            self._index_owners(key, body)
            created = copy.deepcopy(body)
        self._notify(kind, key[1], key[2])
        return created

    def replace(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        body = copy.deepcopy(body)
        metadata = body.setdefault("metadata", {})
        key = (kind.kind, metadata.get("namespace", "default"), metadata["name"])
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise ConflictError(f"{kind} {key[1]}/{key[2]} no longer exists")
            current_meta = current["metadata"]
            if metadata.get("resourceVersion") != current_meta["resourceVersion"]:
                raise ConflictError(
                    f"{kind} {key[1]}/{key[2]} was modified: "
                    f"version {metadata.get('resourceVersion')} != {current_meta['resourceVersion']}"
                )
            for field in ("uid", "creationTimestamp", "namespace"):
                metadata[field] = current_meta.get(field)
            metadata["resourceVersion"] = self._next_version()
            generation = current_meta.get("generation", 1)
            metadata["generation"] = generation + 1 if body.get("spec") != current.get("spec") else generation
            if "status" in current:
                body["status"] = current["status"]
            self._unindex_owners(key, current)
            self._objects[key] = body
            self._index_owners(key, body)
            replaced = copy.deepcopy(body)
        self._notify(kind, key[1], key[2])
        return replaced

    def patch_status(self, kind: ResourceKind, namespace: str, name: str, status: dict[str, Any]) -> dict[str, Any]:
        key = (kind.kind, namespace, name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise ConflictError(f"{kind} {namespace}/{name} no longer exists")
            current["status"] = {**current.get("status", {}), **copy.deepcopy(status)}
            current["metadata"]["resourceVersion"] = self._next_version()
            patched = copy.deepcopy(current)
        return patched

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> bool:
        """Delete an object and, recursively, everything it owns."""
        with self._lock:
            deleted = self._delete(kind.kind, namespace, name)
        for kind_name, ns, obj_name in deleted:
            self._notify(kind_by_name(kind_name), ns, obj_name)
        return bool(deleted)

    def _delete(self, kind_name: str, namespace: str, name: str) -> list[StoreKey]:
        key = (kind_name, namespace, name)
        body = self._objects.pop(key, None)
        if body is None:
            return []
        self._unindex_owners(key, body)
        deleted = [key]
        for child in sorted(self._owned.pop(body["metadata"]["uid"], set())):
            logger.info(f"Garbage collecting {child[0]} {child[1]}/{child[2]} owned by {kind_name} {namespace}/{name}")
            deleted.extend(self._delete(*child))
        return deleted

    def _index_owners(self, key: StoreKey, body: dict[str, Any]) -> None:
        for ref in body["metadata"].get("ownerReferences") or []:
            self._owned[ref["uid"]].add(key)

    def _unindex_owners(self, key: StoreKey, body: dict[str, Any]) -> None:
        for ref in body["metadata"].get("ownerReferences") or []:
            self._owned[ref["uid"]].discard(key)

    def owned_by(self, uid: str) -> list[StoreKey]:
        """Keys of the objects owned by the object with ``uid``."""
        with self._lock:
            return sorted(self._owned.get(uid, set()))
