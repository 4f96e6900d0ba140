"""Desired state of a kernel instance."""

from ..constants import (
    DEFAULT_KERNEL_IDLE_TIMEOUT,
    KERNEL_CONTAINER_NAME,
    LABEL_KERNEL,
    LABEL_KERNELSPEC,
    LABEL_LANGUAGE,
    LABEL_NOTEBOOK,
)
from ..models.resources import EnvVar, JupyterKernel, JupyterKernelSpec, JupyterKernelTemplate
from ..models.workload import Workload
from .kernelspec import kernel_language, merge_env, merge_template


def kernel_labels(kernel: JupyterKernel) -> dict[str, str]:
    return {LABEL_KERNEL: kernel.name}


def kernel_env(kernel: JupyterKernel, language: str) -> list[EnvVar]:
    spec = kernel.spec
    idle_timeout = spec.idle_timeout if spec.idle_timeout is not None else DEFAULT_KERNEL_IDLE_TIMEOUT
    env = [
        EnvVar(name="KERNEL_ID", value=kernel.name),
        EnvVar(name="KERNEL_LANGUAGE", value=language),
        EnvVar(name="KERNEL_IDLE_TIMEOUT", value=str(idle_timeout)),
    ]
    if spec.notebook:
        env.append(EnvVar(name="KERNEL_NOTEBOOK", value=spec.notebook))
    if spec.session:
        env.append(EnvVar(name="KERNEL_SESSION", value=spec.session))
    return env


def generate_workload(
    kernel: JupyterKernel, kernel_spec: JupyterKernelSpec, template: JupyterKernelTemplate
) -> Workload:
    """Compute the deployment running a kernel.

    The pod is the kernel template with the kernel spec overrides applied,
    plus the runtime parameters of the kernel as environment variables.
    """
    pod_template = merge_template(template, kernel_spec)
    language = kernel_language(kernel_spec)

    labels = dict(pod_template.metadata.labels)
    labels.update({LABEL_KERNELSPEC: kernel_spec.name, LABEL_LANGUAGE: language})
    if kernel.spec.notebook:
        labels[LABEL_NOTEBOOK] = kernel.spec.notebook
    labels.update(kernel_labels(kernel))

    first = pod_template.spec.containers[0]
    first = first.model_copy(
        update={
            "name": first.name or KERNEL_CONTAINER_NAME,
            "env": merge_env(first.env, kernel_env(kernel, language)),
        }
    )

    return Workload(
        name=kernel.name,
        namespace=kernel.namespace,
        labels=labels,
        annotations=dict(pod_template.metadata.annotations),
        selector=kernel_labels(kernel),
        replicas=1,
        pod_spec=pod_template.spec.model_copy(update={"containers": [first, *pod_template.spec.containers[1:]]}),
    )
