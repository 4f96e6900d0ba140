"""Owner linkage between spec objects and the children generated from them."""

from typing import Any

import kopf

from .constants import LABEL_MANAGED_BY, MANAGED_BY
from .models.resources import Resource


def adopt(manifest: dict[str, Any], owner: Resource) -> dict[str, Any]:
    """Make ``owner`` the controller of ``manifest`` so deleting it cascades."""
    kopf.append_owner_reference(manifest, owner=owner.owner_body())
    manifest.setdefault("metadata", {}).setdefault("labels", {})[LABEL_MANAGED_BY] = MANAGED_BY
    return manifest


def controller_uid(manifest: dict[str, Any]) -> str | None:
    """The uid of the controlling owner of ``manifest``, if any."""
    for ref in (manifest.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref.get("uid")
    return None
