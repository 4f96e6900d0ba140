"""Desired state of an enterprise gateway: its deployment and its service."""

import json

from ..constants import (
    DEFAULT_GATEWAY_IMAGE,
    GATEWAY_CONTAINER_NAME,
    GATEWAY_PORT,
    GATEWAY_RESPONSE_PORT,
    KERNELSPEC_CONFIGMAP_SUFFIX,
    KERNELSPEC_MOUNT_PATH,
    LABEL_GATEWAY,
)
from ..exceptions import ValidationError
from ..models.resources import Container, ContainerPort, EnvVar, JupyterGateway, PodSpec, VolumeMount
from ..models.workload import GatewayEndpoint, ServicePort, Workload

DEFAULT_KERNEL_CLUSTER_ROLE = "kernel-controller"
DEFAULT_KERNEL_NAME = "python_kubernetes"


def gateway_labels(gateway: JupyterGateway) -> dict[str, str]:
    return {LABEL_GATEWAY: gateway.name}


def kernelspec_volume_name(kernel: str) -> str:
    return f"kernelspec-{kernel}"


def gateway_env(gateway: JupyterGateway) -> list[EnvVar]:
    """Enterprise gateway settings derived from the gateway spec."""
    spec = gateway.spec
    env = {
        "EG_PORT": str(GATEWAY_PORT),
        "EG_RESPONSE_PORT": str(GATEWAY_RESPONSE_PORT),
        "EG_NAMESPACE": gateway.namespace,
        "EG_SHARED_NAMESPACE": "True",
        "EG_MIRROR_WORKING_DIRS": "False",
        "EG_KERNEL_CLUSTER_ROLE": spec.cluster_role or DEFAULT_KERNEL_CLUSTER_ROLE,
        "EG_KERNEL_WHITELIST": json.dumps(spec.kernels),
        "EG_DEFAULT_KERNEL_NAME": spec.default_kernel or (spec.kernels[0] if spec.kernels else DEFAULT_KERNEL_NAME),
    }
    if spec.cull_idle_timeout is not None:
        env["EG_CULL_IDLE_TIMEOUT"] = str(spec.cull_idle_timeout)
    if spec.cull_interval is not None:
        env["EG_CULL_INTERVAL"] = str(spec.cull_interval)
    if spec.log_level is not None:
        env["EG_LOG_LEVEL"] = spec.log_level
    return [EnvVar(name=k, value=v) for k, v in env.items()]


def generate_workload(gateway: JupyterGateway, image: str = DEFAULT_GATEWAY_IMAGE) -> Workload:
    """Compute the deployment running a gateway.

    Every kernel spec the gateway serves is mounted from its config map under
    the gateway's kernels directory.
    """
    spec = gateway.spec
    labels: dict[str, str] = {}
    annotations: dict[str, str] = {}

    if spec.template is not None:
        if not spec.template.spec.containers:
            raise ValidationError("no container defined in the gateway template")
        labels.update(spec.template.metadata.labels)
        annotations.update(spec.template.metadata.annotations)
        pod_spec = spec.template.spec
    else:
        pod_spec = PodSpec(containers=[Container(name=GATEWAY_CONTAINER_NAME)])

    first = pod_spec.containers[0]
    if len(set(spec.kernels)) != len(spec.kernels):
        raise ValidationError(f"duplicate kernels in gateway {gateway.name}: {spec.kernels}")

    mounts = [
        VolumeMount(name=kernelspec_volume_name(kernel), mount_path=f"{KERNELSPEC_MOUNT_PATH}/{kernel}")
        for kernel in spec.kernels
    ]
    volumes = [
        {
            "name": kernelspec_volume_name(kernel),
            "configMap": {
                "name": f"{kernel}{KERNELSPEC_CONFIGMAP_SUFFIX}",
                "items": [
                    {"key": "kernel.json", "path": "kernel.json"},
                    {"key": "kernel-pod.yaml.j2", "path": "scripts/kernel-pod.yaml.j2"},
                ],
            },
        }
        for kernel in spec.kernels
    ]

    first = first.model_copy(
        update={
            "image": first.image or spec.image or image,
            "env": [*first.env, *gateway_env(gateway)],
            "ports": [
                ContainerPort(container_port=GATEWAY_PORT, name="http"),
                ContainerPort(container_port=GATEWAY_RESPONSE_PORT, name="response"),
            ],
            "volume_mounts": [*first.volume_mounts, *mounts],
            "resources": spec.resources or first.resources,
        }
    )
    labels.update(gateway_labels(gateway))

    return Workload(
        name=gateway.name,
        namespace=gateway.namespace,
        labels=labels,
        annotations=annotations,
        selector=gateway_labels(gateway),
        replicas=1,
        pod_spec=pod_spec.model_copy(
            update={"containers": [first, *pod_spec.containers[1:]], "volumes": [*pod_spec.volumes, *volumes]}
        ),
    )


def generate_endpoint(gateway: JupyterGateway) -> GatewayEndpoint:
    """Compute the service exposing a gateway at ``<name>.<namespace>:8888``."""
    return GatewayEndpoint(
        name=gateway.name,
        namespace=gateway.namespace,
        labels=gateway_labels(gateway),
        selector=gateway_labels(gateway),
        ports=[
            ServicePort(name="http", port=GATEWAY_PORT, target_port=GATEWAY_PORT),
            ServicePort(name="response", port=GATEWAY_RESPONSE_PORT, target_port=GATEWAY_RESPONSE_PORT),
        ],
    )
