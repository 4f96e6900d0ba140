"""Data models for the custom resources managed by the operator."""

from datetime import datetime
from typing import Any, ClassVar, NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import (
    API_VERSION,
    GATEWAY_KIND,
    KERNEL_KIND,
    KERNEL_SPEC_KIND,
    KERNEL_TEMPLATE_KIND,
    NOTEBOOK_KIND,
)


class ObjectKey(NamedTuple):
    """Namespace and name of an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class SpecModel(BaseModel):
    """Immutable model reading and writing the camelCase field names of the CRDs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel, extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ResourceRequirements(SpecModel):
    """Kubernetes resource requirements."""

    requests: dict[str, str] | None = None
    limits: dict[str, str] | None = None


class EnvVar(SpecModel):
    model_config = ConfigDict(extra="allow")

    name: str
    value: str | None = None
    value_from: dict[str, Any] | None = None


class ContainerPort(SpecModel):
    model_config = ConfigDict(extra="allow")

    container_port: int
    name: str | None = None


class VolumeMount(SpecModel):
    model_config = ConfigDict(extra="allow")

    name: str
    mount_path: str
    read_only: bool | None = None


class Container(SpecModel):
    """A Kubernetes container.

    The fields the operator reads or writes are modelled; any other field
    (lifecycle, workingDir, envFrom, ...) is kept as is in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    name: str = ""
    image: str | None = None
    image_pull_policy: str | None = None
    command: list[str] = Field(default_factory=list)
    args: list[str] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)
    ports: list[ContainerPort] = Field(default_factory=list)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)
    resources: ResourceRequirements | None = None


class PodSpec(SpecModel):
    """A Kubernetes pod spec; unmodelled fields are kept like on ``Container``."""

    model_config = ConfigDict(extra="allow")

    containers: list[Container] = Field(default_factory=list)
    volumes: list[dict[str, Any]] = Field(default_factory=list)
    service_account_name: str | None = None
    node_selector: dict[str, str] | None = None
    tolerations: list[dict[str, Any]] = Field(default_factory=list)
    termination_grace_period_seconds: int | None = None


class TemplateMetadata(SpecModel):
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class PodTemplate(SpecModel):
    """A pod template: containers plus the labels and annotations of the pod."""

    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    spec: PodSpec = Field(default_factory=PodSpec)


class ObjectReference(SpecModel):
    kind: str | None = None
    namespace: str | None = None
    name: str = ""
    api_version: str | None = None


class ObjectMeta(SpecModel):
    name: str
    namespace: str = "default"
    uid: str | None = None
    resource_version: str | None = None
    generation: int | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    creation_timestamp: datetime | None = None


class JupyterAuth(SpecModel):
    password: str | None = None


class NotebookSpec(SpecModel):
    """Desired state of a notebook: an inline pod template, a remote gateway, or both."""

    template: PodTemplate | None = None
    gateway: ObjectReference | None = None
    auth: JupyterAuth | None = None


class GatewaySpec(SpecModel):
    """Desired state of an enterprise gateway serving remote kernels."""

    template: PodTemplate | None = None
    image: str | None = None
    kernels: list[str] = Field(default_factory=list)
    default_kernel: str | None = None
    cull_idle_timeout: int | None = None
    cull_interval: int | None = None
    log_level: str | None = None
    resources: ResourceRequirements | None = None
    cluster_role: str | None = None


class KernelTemplateSpec(SpecModel):
    template: PodTemplate | None = None


class KernelSpecSpec(SpecModel):
    """A kernel spec: a kernel template reference plus overrides."""

    template: ObjectReference | None = None
    image: str | None = None
    resources: ResourceRequirements | None = None
    language: str | None = None
    display_name: str | None = None
    argv: list[str] = Field(default_factory=list)
    class_name: str | None = None
    env: list[EnvVar] = Field(default_factory=list)


class KernelRuntimeSpec(SpecModel):
    """A running kernel instance: a kernel spec reference plus runtime parameters."""

    kernel_spec: ObjectReference | None = None
    idle_timeout: int | None = None
    notebook: str | None = None
    session: str | None = None


class Resource(SpecModel):
    """Common envelope of a custom resource: identity, spec and last written status."""

    KIND: ClassVar[str]

    api_version: str = API_VERSION
    kind: str = ""
    metadata: ObjectMeta
    status: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> Self:
        """Create an instance from an object body as returned by the API server."""
        data = dict(body)
        data.setdefault("kind", cls.KIND)
        if data.get("spec") is None:
            data.pop("spec", None)
        return cls.model_validate(data)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.metadata.namespace, self.metadata.name)

    def owner_body(self) -> dict[str, Any]:
        """The identity fields children need to point back at this object."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind or self.KIND,
            "metadata": {"name": self.name, "namespace": self.namespace, "uid": self.metadata.uid},
        }


class JupyterNotebook(Resource):
    KIND = NOTEBOOK_KIND

    spec: NotebookSpec = Field(default_factory=NotebookSpec)


class JupyterGateway(Resource):
    KIND = GATEWAY_KIND

    spec: GatewaySpec = Field(default_factory=GatewaySpec)


class JupyterKernelTemplate(Resource):
    KIND = KERNEL_TEMPLATE_KIND

    spec: KernelTemplateSpec = Field(default_factory=KernelTemplateSpec)


class JupyterKernelSpec(Resource):
    KIND = KERNEL_SPEC_KIND

    spec: KernelSpecSpec = Field(default_factory=KernelSpecSpec)


class JupyterKernel(Resource):
    KIND = KERNEL_KIND

    spec: KernelRuntimeSpec = Field(default_factory=KernelRuntimeSpec)
