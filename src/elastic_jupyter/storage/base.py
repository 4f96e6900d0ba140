"""The object store interface the reconcilers read and write through."""

from typing import Any, Protocol

from ..models.kinds import ResourceKind


class ObjectStore(Protocol):
    """Read/write access to the objects persisted by the platform.

    Bodies are plain camelCase dicts. Writes are guarded by
    ``metadata.resourceVersion``: a stale version raises ``ConflictError``.
    Transport failures raise ``PlatformIOError``.
    """

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the object, or ``None`` if it does not exist."""
        ...

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]: ...

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]: ...

    def replace(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]: ...

    def patch_status(self, kind: ResourceKind, namespace: str, name: str, status: dict[str, Any]) -> dict[str, Any]: ...
