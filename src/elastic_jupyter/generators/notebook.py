"""Desired state of a notebook: the workload generated from a JupyterNotebook."""

from ..constants import (
    ARGUMENT_GATEWAY_URL,
    ARGUMENT_NOTEBOOK_PASSWORD,
    DEFAULT_CONTAINER_NAME,
    DEFAULT_NOTEBOOK_IMAGE,
    GATEWAY_PORT,
    KERNEL_LAUNCH_COMMAND,
    LABEL_NOTEBOOK,
)
from ..exceptions import ValidationError
from ..models.resources import Container, JupyterNotebook, ObjectReference, PodSpec
from ..models.workload import Workload


def notebook_labels(notebook: JupyterNotebook) -> dict[str, str]:
    """Labels identifying the pods of a notebook."""
    return {LABEL_NOTEBOOK: notebook.name}


def gateway_url(gateway: ObjectReference, default_namespace: str) -> str:
    """In-cluster URL of a gateway, ``http://<name>.<namespace>:8888``."""
    namespace = gateway.namespace or default_namespace
    return f"http://{gateway.name}.{namespace}:{GATEWAY_PORT}"


def generate_workload(
    notebook: JupyterNotebook | None,
    image: str = DEFAULT_NOTEBOOK_IMAGE,
    launch_command: str = KERNEL_LAUNCH_COMMAND,
) -> Workload:
    """Compute the workload running a notebook.

    An inline template wins over the defaults: its containers, labels and
    annotations seed the workload and its image, when set, is kept. Without a
    template a single container running ``image`` is synthesized and the
    launch command is passed first. The gateway URL and the password are then appended, each
    only when set. The ``notebook`` label is always written last.

    Raises:
        ValidationError: when the notebook is missing, has neither a template
            nor a gateway, or its template defines no container.
    """
    if notebook is None:
        raise ValidationError("the notebook is null")

    spec = notebook.spec
    if spec.template is None and spec.gateway is None:
        raise ValidationError("no gateway and template applied")

    labels: dict[str, str] = {}
    annotations: dict[str, str] = {}
    args: list[str] = []

    if spec.template is not None:
        if not spec.template.spec.containers:
            raise ValidationError("no container defined in the notebook template")
        labels.update(spec.template.metadata.labels)
        annotations.update(spec.template.metadata.annotations)
        pod_spec = spec.template.spec
        first = pod_spec.containers[0]
        if not first.image:
            first = first.model_copy(update={"image": image})
        args.extend(first.args)
    else:
        pod_spec = PodSpec(
            containers=[Container(name=DEFAULT_CONTAINER_NAME, image=image, image_pull_policy="IfNotPresent")],
            termination_grace_period_seconds=30,
        )
        first = pod_spec.containers[0]
        args.append(launch_command)

    if spec.gateway is not None:
        args.extend([ARGUMENT_GATEWAY_URL, gateway_url(spec.gateway, notebook.namespace)])

    if spec.auth is not None and spec.auth.password is not None:
        args.extend([ARGUMENT_NOTEBOOK_PASSWORD, spec.auth.password])

    labels.update(notebook_labels(notebook))

    containers = [first.model_copy(update={"args": args}), *pod_spec.containers[1:]]
    return Workload(
        name=notebook.name,
        namespace=notebook.namespace,
        labels=labels,
        annotations=annotations,
        selector=notebook_labels(notebook),
        replicas=1,
        pod_spec=pod_spec.model_copy(update={"containers": containers}),
    )
