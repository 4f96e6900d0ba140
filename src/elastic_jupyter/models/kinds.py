"""Resource kinds known to the operator."""

from dataclasses import dataclass

from ..constants import (
    GATEWAY_KIND,
    GATEWAY_PLURAL,
    GROUP,
    KERNEL_KIND,
    KERNEL_PLURAL,
    KERNEL_SPEC_KIND,
    KERNEL_SPEC_PLURAL,
    KERNEL_TEMPLATE_KIND,
    KERNEL_TEMPLATE_PLURAL,
    NOTEBOOK_KIND,
    NOTEBOOK_PLURAL,
    VERSION,
)


@dataclass(frozen=True)
class ResourceKind:
    """Group, version and names identifying one kind of object in the store."""

    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def custom(self) -> bool:
        return self.group == GROUP

    def __str__(self) -> str:
        return self.kind


NOTEBOOK = ResourceKind(GROUP, VERSION, NOTEBOOK_PLURAL, NOTEBOOK_KIND)
GATEWAY = ResourceKind(GROUP, VERSION, GATEWAY_PLURAL, GATEWAY_KIND)
KERNEL_TEMPLATE = ResourceKind(GROUP, VERSION, KERNEL_TEMPLATE_PLURAL, KERNEL_TEMPLATE_KIND)
KERNEL_SPEC = ResourceKind(GROUP, VERSION, KERNEL_SPEC_PLURAL, KERNEL_SPEC_KIND)
KERNEL = ResourceKind(GROUP, VERSION, KERNEL_PLURAL, KERNEL_KIND)

DEPLOYMENT = ResourceKind("apps", "v1", "deployments", "Deployment")
SERVICE = ResourceKind("", "v1", "services", "Service")
CONFIG_MAP = ResourceKind("", "v1", "configmaps", "ConfigMap")

CUSTOM_KINDS = (NOTEBOOK, GATEWAY, KERNEL_TEMPLATE, KERNEL_SPEC, KERNEL)
CHILD_KINDS = (DEPLOYMENT, SERVICE, CONFIG_MAP)


def kind_by_name(name: str) -> ResourceKind:
    """Look up a kind by its ``kind`` name, e.g. ``JupyterGateway``."""
    for resource_kind in CUSTOM_KINDS + CHILD_KINDS:
        if resource_kind.kind == name:
            return resource_kind
    raise KeyError(name)
