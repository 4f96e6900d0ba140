"""Generated child objects: the workloads, services and config maps the operator owns."""

import copy
from decimal import Decimal
from typing import Any, ClassVar, Self

from kubernetes import client  # type: ignore
from kubernetes.utils import parse_quantity  # type: ignore
from pydantic import BaseModel, Field

from .kinds import CONFIG_MAP, DEPLOYMENT, SERVICE, ResourceKind
from .resources import Container, ObjectKey, PodSpec, ResourceRequirements, SpecModel

api_client = client.ApiClient()


def serialize(obj: Any) -> dict[str, Any]:
    """Turn a kubernetes client model into the camelCase dict the API server speaks."""
    return api_client.sanitize_for_serialization(obj)


def overlay_extra(rendered: dict[str, Any], model: BaseModel) -> dict[str, Any]:
    """Add the fields ``model`` kept from its source without modelling them."""
    for key, value in (model.model_extra or {}).items():
        rendered.setdefault(key, copy.deepcopy(value))
    return rendered


def quantity(value: str) -> Decimal | str:
    try:
        return parse_quantity(value)
    except ValueError:
        # Malformed quantities are left for the API server to reject
        return value


def canonical_resources(resources: ResourceRequirements | None) -> dict[str, Any]:
    """Resource requirements with parsed quantities, so that ``1000m`` equals ``1``."""
    if resources is None:
        return {}
    canonical = {}
    for field, quantities in (("requests", resources.requests), ("limits", resources.limits)):
        if quantities:
            canonical[field] = {name: quantity(value) for name, value in quantities.items()}
    return canonical


def container_drift(container: Container) -> dict[str, Any]:
    return {
        **(container.model_extra or {}),
        "name": container.name,
        "image": container.image,
        "command": container.command,
        "args": container.args,
        "env": [e.to_dict() for e in container.env],
        "ports": [p.to_dict() for p in container.ports],
        "volumeMounts": [m.to_dict() for m in container.volume_mounts],
        "resources": canonical_resources(container.resources),
    }


class Child(SpecModel):
    """An object generated from a spec object and owned by it."""

    KIND: ClassVar[ResourceKind]

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    def to_manifest(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Self:
        raise NotImplementedError

    def drift_fields(self) -> dict[str, Any]:
        """The fields compared against the live object to detect drift."""
        raise NotImplementedError

    def prepare_update(self, desired: dict[str, Any], live: dict[str, Any]) -> dict[str, Any]:
        """Carry over what a full replace of ``live`` by ``desired`` must keep."""
        desired["metadata"]["resourceVersion"] = live["metadata"].get("resourceVersion")
        return desired


class Workload(Child):
    """A single-replica deployment running the generated pod.

    ``labels`` and ``annotations`` are those of the pod template; ``selector``
    also labels the deployment itself.
    """

    KIND = DEPLOYMENT

    annotations: dict[str, str] = Field(default_factory=dict)
    selector: dict[str, str] = Field(default_factory=dict)
    replicas: int = 1
    pod_spec: PodSpec = Field(default_factory=PodSpec)

    @property
    def container(self) -> Container:
        return self.pod_spec.containers[0]

    @property
    def image(self) -> str | None:
        return self.container.image

    @property
    def args(self) -> list[str]:
        return self.container.args

    def to_manifest(self) -> dict[str, Any]:
        containers = [
            client.V1Container(
                name=c.name,
                image=c.image,
                image_pull_policy=c.image_pull_policy,
                command=c.command or None,
                args=c.args or None,
                env=[e.to_dict() for e in c.env] or None,
                ports=[p.to_dict() for p in c.ports] or None,
                volume_mounts=[m.to_dict() for m in c.volume_mounts] or None,
                resources=client.V1ResourceRequirements(**c.resources.model_dump()) if c.resources else None,
            )
            for c in self.pod_spec.containers
        ]

        template = client.V1PodTemplateSpec(
            metadata=client.V1ObjectMeta(labels=dict(self.labels), annotations=dict(self.annotations) or None),
            spec=client.V1PodSpec(
                containers=containers,
                volumes=self.pod_spec.volumes or None,
                service_account_name=self.pod_spec.service_account_name,
                node_selector=self.pod_spec.node_selector,
                tolerations=self.pod_spec.tolerations or None,
                termination_grace_period_seconds=self.pod_spec.termination_grace_period_seconds,
            ),
        )

        deployment = client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=client.V1ObjectMeta(name=self.name, namespace=self.namespace, labels=dict(self.selector)),
            spec=client.V1DeploymentSpec(
                replicas=self.replicas,
                selector=client.V1LabelSelector(match_labels=dict(self.selector)),
                template=template,
            ),
        )
        manifest = serialize(deployment)
        pod = overlay_extra(manifest["spec"]["template"]["spec"], self.pod_spec)
        for rendered, container in zip(pod["containers"], self.pod_spec.containers):
            overlay_extra(rendered, container)
        return manifest

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Self:
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        template = spec.get("template") or {}
        template_meta = template.get("metadata") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            labels=template_meta.get("labels") or {},
            annotations=template_meta.get("annotations") or {},
            selector=(spec.get("selector") or {}).get("matchLabels") or {},
            replicas=spec.get("replicas", 1),
            pod_spec=PodSpec.model_validate(template.get("spec") or {}),
        )

    def drift_fields(self) -> dict[str, Any]:
        pod_spec = self.pod_spec
        return {
            "containers": [container_drift(c) for c in pod_spec.containers],
            "pod": {
                **(pod_spec.model_extra or {}),
                "volumes": pod_spec.volumes,
                "serviceAccountName": pod_spec.service_account_name,
                "nodeSelector": pod_spec.node_selector,
                "tolerations": pod_spec.tolerations,
                "terminationGracePeriodSeconds": pod_spec.termination_grace_period_seconds,
            },
            # Pairs so that removed keys count as drift
            "labels": sorted(self.labels.items()),
            "annotations": sorted(self.annotations.items()),
            "replicas": self.replicas,
        }


class ServicePort(SpecModel):
    name: str
    port: int
    target_port: int


class GatewayEndpoint(Child):
    """The cluster-internal service fronting a gateway."""

    KIND = SERVICE

    selector: dict[str, str] = Field(default_factory=dict)
    ports: list[ServicePort] = Field(default_factory=list)

    def to_manifest(self) -> dict[str, Any]:
        service = client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=client.V1ObjectMeta(name=self.name, namespace=self.namespace, labels=dict(self.labels)),
            spec=client.V1ServiceSpec(
                selector=dict(self.selector),
                ports=[client.V1ServicePort(name=p.name, port=p.port, target_port=p.target_port) for p in self.ports],
                type="ClusterIP",
            ),
        )
        return serialize(service)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Self:
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            labels=metadata.get("labels") or {},
            selector=spec.get("selector") or {},
            ports=[
                ServicePort(name=p.get("name", ""), port=p["port"], target_port=p.get("targetPort", p["port"]))
                for p in spec.get("ports") or []
            ],
        )

    def drift_fields(self) -> dict[str, Any]:
        return {"selector": sorted(self.selector.items()), "ports": [p.to_dict() for p in self.ports]}

    def prepare_update(self, desired: dict[str, Any], live: dict[str, Any]) -> dict[str, Any]:
        desired = super().prepare_update(desired, live)
        live_spec = live.get("spec") or {}
        # The cluster IP is immutable once allocated
        for field in ("clusterIP", "clusterIPs"):
            if field in live_spec:
                desired["spec"][field] = live_spec[field]
        return desired


class KernelSpecConfig(Child):
    """The config map holding a rendered kernel spec directory."""

    KIND = CONFIG_MAP

    data: dict[str, str] = Field(default_factory=dict)

    def to_manifest(self) -> dict[str, Any]:
        config_map = client.V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=client.V1ObjectMeta(name=self.name, namespace=self.namespace, labels=dict(self.labels)),
            data=dict(self.data),
        )
        return serialize(config_map)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Self:
        metadata = manifest.get("metadata") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            labels=metadata.get("labels") or {},
            data=manifest.get("data") or {},
        )

    def drift_fields(self) -> dict[str, Any]:
        return {"labels": sorted(self.labels.items()), "data": sorted(self.data.items())}
