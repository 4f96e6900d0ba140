"""Cross-reference lookup between spec objects."""

import logging
from typing import NamedTuple, TypeVar

from .constants import LOGGER_NAME
from .exceptions import AmbiguousReferenceError, NotFoundError
from .models.kinds import GATEWAY, KERNEL, KERNEL_SPEC, KERNEL_TEMPLATE, NOTEBOOK, ResourceKind
from .models.resources import (
    JupyterGateway,
    JupyterKernel,
    JupyterKernelSpec,
    JupyterKernelTemplate,
    JupyterNotebook,
    ObjectReference,
    Resource,
)
from .storage.base import ObjectStore

logger = logging.getLogger(LOGGER_NAME)

MODELS: dict[ResourceKind, type[Resource]] = {
    NOTEBOOK: JupyterNotebook,
    GATEWAY: JupyterGateway,
    KERNEL_TEMPLATE: JupyterKernelTemplate,
    KERNEL_SPEC: JupyterKernelSpec,
    KERNEL: JupyterKernel,
}

R = TypeVar("R", bound=Resource)


class KernelChain(NamedTuple):
    """A kernel spec together with the kernel template it inherits from."""

    kernel_spec: JupyterKernelSpec
    template: JupyterKernelTemplate


class Resolver:
    """Looks up referenced objects through a read-only view of the store."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def fetch(self, kind: ResourceKind, namespace: str, name: str) -> Resource | None:
        """Fetch and parse an object, ``None`` when it does not exist."""
        body = self.store.get(kind, namespace, name)
        if body is None:
            return None
        return MODELS[kind].from_body(body)

    def resolve(self, model: type[R], kind: ResourceKind, ref: ObjectReference | None, namespace: str) -> R:
        """Resolve a reference to ``kind``; the namespace defaults to the referrer's.

        Raises:
            AmbiguousReferenceError: the reference is missing, names no object
                or names another kind.
            NotFoundError: the referenced object does not exist (yet).
        """
        if ref is None or not ref.name:
            raise AmbiguousReferenceError(f"empty reference to a {kind}")
        if ref.kind and ref.kind != kind.kind:
            raise AmbiguousReferenceError(f"reference to {ref.kind} {ref.name} where a {kind} is expected")
        return self.resolve_name(model, kind, ref.namespace or namespace, ref.name)

    def resolve_name(self, model: type[R], kind: ResourceKind, namespace: str, name: str) -> R:
        if not name:
            raise AmbiguousReferenceError(f"empty reference to a {kind}")
        body = self.store.get(kind, namespace, name)
        if body is None:
            logger.debug(f"Reference to {kind} {namespace}/{name} not found")
            raise NotFoundError(kind.kind, namespace, name)
        return model.from_body(body)

    def resolve_gateway(self, notebook: JupyterNotebook) -> JupyterGateway | None:
        if notebook.spec.gateway is None:
            return None
        return self.resolve(JupyterGateway, GATEWAY, notebook.spec.gateway, notebook.namespace)

    def resolve_kernel_specs(self, gateway: JupyterGateway) -> list[JupyterKernelSpec]:
        return [
            self.resolve_name(JupyterKernelSpec, KERNEL_SPEC, gateway.namespace, kernel)
            for kernel in gateway.spec.kernels
        ]

    def resolve_template(self, kernel_spec: JupyterKernelSpec) -> JupyterKernelTemplate:
        return self.resolve(JupyterKernelTemplate, KERNEL_TEMPLATE, kernel_spec.spec.template, kernel_spec.namespace)

    def resolve_kernel(self, kernel: JupyterKernel) -> KernelChain:
        """Resolve the inheritance chain Kernel → KernelSpec → KernelTemplate."""
        kernel_spec = self.resolve(JupyterKernelSpec, KERNEL_SPEC, kernel.spec.kernel_spec, kernel.namespace)
        return KernelChain(kernel_spec, self.resolve_template(kernel_spec))
