"""Desired state of kernel templates and kernel specs.

A kernel template is the base of the inheritance chain; a kernel spec
references one and may override its image, resources, environment and
language. The merged result is rendered into a config map that a gateway
mounts as a kernel spec directory.
"""

import json

import yaml

from ..constants import (
    DEFAULT_KERNEL_LANGUAGE,
    DEFAULT_PROCESS_PROXY,
    KERNELSPEC_CONFIGMAP_SUFFIX,
    KERNELSPEC_MOUNT_PATH,
    LABEL_KERNELSPEC,
)
from ..exceptions import ValidationError
from ..models.resources import EnvVar, JupyterKernelSpec, JupyterKernelTemplate, PodTemplate
from ..models.workload import KernelSpecConfig


def validate_template(template: JupyterKernelTemplate) -> PodTemplate:
    """Return the pod template of a kernel template, rejecting an unusable one."""
    if template.spec.template is None:
        raise ValidationError(f"kernel template {template.name} has no template")
    if not template.spec.template.spec.containers:
        raise ValidationError(f"no container defined in kernel template {template.name}")
    return template.spec.template


def merge_env(base: list[EnvVar], overrides: list[EnvVar]) -> list[EnvVar]:
    """Environment of ``base`` with same-named variables replaced by ``overrides``."""
    merged = {e.name: e for e in base}
    merged.update({e.name: e for e in overrides})
    return list(merged.values())


def merge_template(template: JupyterKernelTemplate, kernel_spec: JupyterKernelSpec) -> PodTemplate:
    """Apply the overrides of a kernel spec to the first container of its template."""
    pod_template = validate_template(template)
    spec = kernel_spec.spec
    first = pod_template.spec.containers[0]
    first = first.model_copy(
        update={
            "image": spec.image or first.image,
            "resources": spec.resources or first.resources,
            "env": merge_env(first.env, spec.env),
        }
    )
    if not first.image:
        raise ValidationError(f"no image for kernel spec {kernel_spec.name}")
    containers = [first, *pod_template.spec.containers[1:]]
    return pod_template.model_copy(update={"spec": pod_template.spec.model_copy(update={"containers": containers})})


def kernel_language(kernel_spec: JupyterKernelSpec) -> str:
    return kernel_spec.spec.language or DEFAULT_KERNEL_LANGUAGE


def default_argv(name: str) -> list[str]:
    return [
        "python",
        f"{KERNELSPEC_MOUNT_PATH}/{name}/scripts/launch_kubernetes.py",
        "--RemoteProcessProxy.kernel-id",
        "{kernel_id}",
        "--RemoteProcessProxy.port-range",
        "{port_range}",
        "--RemoteProcessProxy.response-address",
        "{response_address}",
        "--RemoteProcessProxy.public-key",
        "{public_key}",
    ]


def render_kernel_json(kernel_spec: JupyterKernelSpec, pod_template: PodTemplate) -> str:
    spec = kernel_spec.spec
    document = {
        "display_name": spec.display_name or kernel_spec.name,
        "language": kernel_language(kernel_spec),
        "argv": spec.argv or default_argv(kernel_spec.name),
        "env": {e.name: e.value for e in spec.env if e.value is not None},
        "metadata": {
            "process_proxy": {
                "class_name": spec.class_name or DEFAULT_PROCESS_PROXY,
                "config": {"image_name": pod_template.spec.containers[0].image},
            }
        },
    }
    return json.dumps(document, indent=2, sort_keys=True)


def render_kernel_pod(kernel_spec: JupyterKernelSpec, pod_template: PodTemplate) -> str:
    """The pod template the gateway renders (jinja) when it launches a kernel."""
    metadata = {
        "name": "{{ kernel_pod_name }}",
        "namespace": "{{ kernel_namespace }}",
        "labels": {
            **pod_template.metadata.labels,
            LABEL_KERNELSPEC: kernel_spec.name,
            "kernel_id": "{{ kernel_id }}",
        },
    }
    if pod_template.metadata.annotations:
        metadata["annotations"] = dict(pod_template.metadata.annotations)
    pod = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": metadata,
        "spec": {"restartPolicy": "Never", **pod_template.spec.to_dict()},
    }
    return yaml.safe_dump(pod, sort_keys=True)


def config_map_name(kernel_spec_name: str) -> str:
    return f"{kernel_spec_name}{KERNELSPEC_CONFIGMAP_SUFFIX}"


def generate_config(kernel_spec: JupyterKernelSpec, template: JupyterKernelTemplate) -> KernelSpecConfig:
    """Compute the config map holding the kernel spec directory."""
    pod_template = merge_template(template, kernel_spec)
    return KernelSpecConfig(
        name=config_map_name(kernel_spec.name),
        namespace=kernel_spec.namespace,
        labels={LABEL_KERNELSPEC: kernel_spec.name},
        data={
            "kernel.json": render_kernel_json(kernel_spec, pod_template),
            "kernel-pod.yaml.j2": render_kernel_pod(kernel_spec, pod_template),
        },
    )
