"""Object store backed by the Kubernetes API server."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from kubernetes import client, config  # type: ignore
from kubernetes.client.rest import ApiException  # type: ignore
from urllib3.exceptions import HTTPError

from ..constants import LOGGER_NAME
from ..exceptions import ConflictError, PlatformIOError
from ..models.kinds import CONFIG_MAP, DEPLOYMENT, SERVICE, ResourceKind
from ..models.workload import serialize

# Set up logger
logger = logging.getLogger(LOGGER_NAME)

# Snake-case name used in the typed client methods, e.g. read_namespaced_config_map
TYPED_NAMES = {
    DEPLOYMENT: "deployment",
    SERVICE: "service",
    CONFIG_MAP: "config_map",
}


def load_config() -> None:
    """Configure the client from the service account, falling back to kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes configuration")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Using local kubeconfig")


@contextmanager
def translate_errors(kind: ResourceKind, namespace: str | None, name: str | None) -> Iterator[None]:
    """Map client errors onto the operator's error taxonomy."""
    target = f"{kind} {namespace}/{name}" if name else f"{kind} in {namespace or 'all namespaces'}"
    try:
        yield
    except ApiException as e:
        if e.status in (404, 409):
            # A vanished object on write is a lost race like a version mismatch
            raise ConflictError(f"Conflict writing {target}: {e.reason}") from e
        raise PlatformIOError(f"API error on {target}: {e.status} {e.reason}") from e
    except HTTPError as e:
        raise PlatformIOError(f"Transport error on {target}: {e}") from e


class KubernetesStore:
    """``ObjectStore`` talking to the API server through the kubernetes client.

    Create it after ``load_config()``: the API clients copy the default
    client configuration when they are built.
    """

    def __init__(self) -> None:
        self.apps_v1 = client.AppsV1Api()
        self.core_v1 = client.CoreV1Api()
        self.custom_objects = client.CustomObjectsApi()

    def _typed(self, verb: str, kind: ResourceKind) -> Callable[..., Any]:
        api = self.apps_v1 if kind.group == "apps" else self.core_v1
        return getattr(api, verb.format(TYPED_NAMES[kind]))

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        try:
            if kind.custom:
                return self.custom_objects.get_namespaced_custom_object(
                    kind.group, kind.version, namespace, kind.plural, name
                )
            return serialize(self._typed("read_namespaced_{}", kind)(name=name, namespace=namespace))
        except ApiException as e:
            if e.status == 404:  # Absent is a normal answer for reads
                return None
            raise PlatformIOError(f"API error reading {kind} {namespace}/{name}: {e.status} {e.reason}") from e
        except HTTPError as e:
            raise PlatformIOError(f"Transport error reading {kind} {namespace}/{name}: {e}") from e

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        with translate_errors(kind, namespace, None):
            if kind.custom:
                if namespace is None:
                    result = self.custom_objects.list_cluster_custom_object(kind.group, kind.version, kind.plural)
                else:
                    result = self.custom_objects.list_namespaced_custom_object(
                        kind.group, kind.version, namespace, kind.plural
                    )
                return list(result.get("items", []))
            if namespace is None:
                result = self._typed("list_{}_for_all_namespaces", kind)()
            else:
                result = self._typed("list_namespaced_{}", kind)(namespace=namespace)
            return [serialize(item) for item in result.items]

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        namespace = body["metadata"]["namespace"]
        name = body["metadata"]["name"]
        with translate_errors(kind, namespace, name):
            if kind.custom:
                return self.custom_objects.create_namespaced_custom_object(
                    kind.group, kind.version, namespace, kind.plural, body
                )
            return serialize(self._typed("create_namespaced_{}", kind)(namespace=namespace, body=body))

    def replace(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        namespace = body["metadata"]["namespace"]
        name = body["metadata"]["name"]
        with translate_errors(kind, namespace, name):
            if kind.custom:
                return self.custom_objects.replace_namespaced_custom_object(
                    kind.group, kind.version, namespace, kind.plural, name, body
                )
            return serialize(self._typed("replace_namespaced_{}", kind)(name=name, namespace=namespace, body=body))

    def patch_status(self, kind: ResourceKind, namespace: str, name: str, status: dict[str, Any]) -> dict[str, Any]:
        with translate_errors(kind, namespace, name):
            if kind.custom:
                return self.custom_objects.patch_namespaced_custom_object_status(
                    kind.group, kind.version, namespace, kind.plural, name, {"status": status}
                )
            patched = self._typed("patch_namespaced_{}_status", kind)(
                name=name, namespace=namespace, body={"status": status}
            )
            return serialize(patched)
