"""Kopf handlers for the Jupyter custom resources.

Kopf is the scheduler: it watches the resources, serializes handlers per
object and retries on ``kopf.TemporaryError``. Every handler delegates to the
reconciler of its kind found in the operator memo.
"""

import logging
from typing import Any

import kopf

from ..config import OperatorSettings
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
    LOGGER_NAME,
    NOTEBOOK_KIND,
    NOTEBOOK_PLURAL,
    VERSION,
)
from ..exceptions import ConflictError, PlatformIOError
from ..models.resources import ObjectKey
from ..storage.kubernetes import KubernetesStore, load_config
from .registry import build_reconcilers

# Set up logger
logger = logging.getLogger(LOGGER_NAME)

# Timer intervals are fixed when the handlers are registered
RESYNC_SECONDS = OperatorSettings().resync_seconds


def handle_startup(settings: kopf.OperatorSettings, memo: kopf.Memo) -> None:
    """Prepare the memo shared by all handlers unless the entrypoint already did."""
    if "reconcilers" not in memo:
        load_config()
        memo.settings = OperatorSettings()
        memo.reconcilers = build_reconcilers(KubernetesStore(), memo.settings)

    # Status conditions carry the outcome; only post warnings as events
    settings.posting.level = logging.WARNING
    logger.info(f"Reconciling {', '.join(sorted(memo.reconcilers))}")


def handle_reconcile(kind: str, name: str, namespace: str, memo: kopf.Memo, body: Any = None) -> None:
    """Reconcile one object and translate the result for kopf."""
    result = memo.reconcilers[kind].reconcile(ObjectKey(namespace, name))

    if result.requeue_after is not None:
        raise kopf.TemporaryError(f"{kind} {namespace}/{name} is {result.phase}", delay=result.requeue_after)

    if isinstance(result.error, (ConflictError, PlatformIOError)):
        raise kopf.TemporaryError(str(result.error), delay=memo.settings.reference_retry_seconds)

    if result.error is not None:
        # Retrying cannot fix an invalid spec; surface it and wait for an edit
        logger.warning(f"{kind} {namespace}/{name} is invalid: {result.error}")
        if body is not None:
            kopf.warn(body, reason="InvalidSpec", message=str(result.error))


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **kwargs):
    """Kopf handler configuring the operator."""
    handle_startup(settings, memo)


@kopf.on.resume(GROUP, VERSION, NOTEBOOK_PLURAL)
@kopf.on.create(GROUP, VERSION, NOTEBOOK_PLURAL)
@kopf.on.update(GROUP, VERSION, NOTEBOOK_PLURAL, field="spec")
def reconcile_notebook(name, namespace, memo, body, **kwargs):
    """Kopf handler reconciling Jupyter notebooks."""
    handle_reconcile(NOTEBOOK_KIND, name, namespace, memo, body)


@kopf.timer(GROUP, VERSION, NOTEBOOK_PLURAL, interval=RESYNC_SECONDS, idle=RESYNC_SECONDS)
def resync_notebook(name, namespace, memo, body, **kwargs):
    """Kopf timer repairing drift of notebook workloads."""
    handle_reconcile(NOTEBOOK_KIND, name, namespace, memo, body)


@kopf.on.resume(GROUP, VERSION, GATEWAY_PLURAL)
@kopf.on.create(GROUP, VERSION, GATEWAY_PLURAL)
@kopf.on.update(GROUP, VERSION, GATEWAY_PLURAL, field="spec")
def reconcile_gateway(name, namespace, memo, body, **kwargs):
    """Kopf handler reconciling Jupyter gateways."""
    handle_reconcile(GATEWAY_KIND, name, namespace, memo, body)


@kopf.timer(GROUP, VERSION, GATEWAY_PLURAL, interval=RESYNC_SECONDS, idle=RESYNC_SECONDS)
def resync_gateway(name, namespace, memo, body, **kwargs):
    """Kopf timer repairing drift of gateway workloads."""
    handle_reconcile(GATEWAY_KIND, name, namespace, memo, body)


@kopf.on.resume(GROUP, VERSION, KERNEL_TEMPLATE_PLURAL)
@kopf.on.create(GROUP, VERSION, KERNEL_TEMPLATE_PLURAL)
@kopf.on.update(GROUP, VERSION, KERNEL_TEMPLATE_PLURAL, field="spec")
def reconcile_kernel_template(name, namespace, memo, body, **kwargs):
    """Kopf handler validating Jupyter kernel templates."""
    handle_reconcile(KERNEL_TEMPLATE_KIND, name, namespace, memo, body)


@kopf.on.resume(GROUP, VERSION, KERNEL_SPEC_PLURAL)
@kopf.on.create(GROUP, VERSION, KERNEL_SPEC_PLURAL)
@kopf.on.update(GROUP, VERSION, KERNEL_SPEC_PLURAL, field="spec")
def reconcile_kernel_spec(name, namespace, memo, body, **kwargs):
    """Kopf handler reconciling Jupyter kernel specs."""
    handle_reconcile(KERNEL_SPEC_KIND, name, namespace, memo, body)


@kopf.timer(GROUP, VERSION, KERNEL_SPEC_PLURAL, interval=RESYNC_SECONDS, idle=RESYNC_SECONDS)
def resync_kernel_spec(name, namespace, memo, body, **kwargs):
    """Kopf timer repairing drift of kernel spec config maps."""
    handle_reconcile(KERNEL_SPEC_KIND, name, namespace, memo, body)


@kopf.on.resume(GROUP, VERSION, KERNEL_PLURAL)
@kopf.on.create(GROUP, VERSION, KERNEL_PLURAL)
@kopf.on.update(GROUP, VERSION, KERNEL_PLURAL, field="spec")
def reconcile_kernel(name, namespace, memo, body, **kwargs):
    """Kopf handler reconciling Jupyter kernels."""
    handle_reconcile(KERNEL_KIND, name, namespace, memo, body)


@kopf.timer(GROUP, VERSION, KERNEL_PLURAL, interval=RESYNC_SECONDS, idle=RESYNC_SECONDS)
def resync_kernel(name, namespace, memo, body, **kwargs):
    """Kopf timer repairing drift of kernel workloads."""
    handle_reconcile(KERNEL_KIND, name, namespace, memo, body)
