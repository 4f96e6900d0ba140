"""Explicit wiring of one reconciler per managed kind."""

from ..config import OperatorSettings
from ..generators import gateway, kernel, kernelspec, notebook
from ..models.kinds import GATEWAY, KERNEL, KERNEL_SPEC, KERNEL_TEMPLATE, NOTEBOOK
from ..models.resources import (
    JupyterGateway,
    JupyterKernel,
    JupyterKernelSpec,
    JupyterKernelTemplate,
    JupyterNotebook,
)
from ..models.workload import Child
from ..resolver import KernelChain, Resolver
from ..storage.base import ObjectStore
from .reconciler import KindHandlers, Reconciler


def notebook_handlers(settings: OperatorSettings) -> KindHandlers:
    def resolve(resolver: Resolver, nb: JupyterNotebook) -> JupyterGateway | None:
        return resolver.resolve_gateway(nb)

    def generate(nb: JupyterNotebook, _gateway: JupyterGateway | None) -> list[Child]:
        return [
            notebook.generate_workload(nb, image=settings.notebook_image, launch_command=settings.kernel_launch_command)
        ]

    return KindHandlers(NOTEBOOK, JupyterNotebook, resolve, generate)


def gateway_handlers(settings: OperatorSettings) -> KindHandlers:
    def resolve(resolver: Resolver, gw: JupyterGateway) -> list[JupyterKernelSpec]:
        return resolver.resolve_kernel_specs(gw)

    def generate(gw: JupyterGateway, _kernel_specs: list[JupyterKernelSpec]) -> list[Child]:
        return [gateway.generate_workload(gw, image=settings.gateway_image), gateway.generate_endpoint(gw)]

    return KindHandlers(GATEWAY, JupyterGateway, resolve, generate)


def kernel_template_handlers() -> KindHandlers:
    def resolve(_resolver: Resolver, _template: JupyterKernelTemplate) -> None:
        return None

    def generate(template: JupyterKernelTemplate, _references: None) -> list[Child]:
        kernelspec.validate_template(template)
        return []

    return KindHandlers(KERNEL_TEMPLATE, JupyterKernelTemplate, resolve, generate)


def kernel_spec_handlers() -> KindHandlers:
    def resolve(resolver: Resolver, spec: JupyterKernelSpec) -> JupyterKernelTemplate:
        return resolver.resolve_template(spec)

    def generate(spec: JupyterKernelSpec, template: JupyterKernelTemplate) -> list[Child]:
        return [kernelspec.generate_config(spec, template)]

    return KindHandlers(KERNEL_SPEC, JupyterKernelSpec, resolve, generate)


def kernel_handlers() -> KindHandlers:
    def resolve(resolver: Resolver, k: JupyterKernel) -> KernelChain:
        return resolver.resolve_kernel(k)

    def generate(k: JupyterKernel, chain: KernelChain) -> list[Child]:
        return [kernel.generate_workload(k, chain.kernel_spec, chain.template)]

    return KindHandlers(KERNEL, JupyterKernel, resolve, generate)


def build_reconcilers(store: ObjectStore, settings: OperatorSettings) -> dict[str, Reconciler]:
    """One reconciler per managed kind, keyed by kind name."""
    handlers = [
        notebook_handlers(settings),
        gateway_handlers(settings),
        kernel_template_handlers(),
        kernel_spec_handlers(),
        kernel_handlers(),
    ]
    return {h.resource.kind: Reconciler(store, h, settings) for h in handlers}
