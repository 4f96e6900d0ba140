"""Constants shared by the generators, the reconcilers and the kopf handlers."""

GROUP = "kubeflow.tkestack.io"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"

NOTEBOOK_KIND = "JupyterNotebook"
GATEWAY_KIND = "JupyterGateway"
KERNEL_TEMPLATE_KIND = "JupyterKernelTemplate"
KERNEL_SPEC_KIND = "JupyterKernelSpec"
KERNEL_KIND = "JupyterKernel"

NOTEBOOK_PLURAL = "jupyternotebooks"
GATEWAY_PLURAL = "jupytergateways"
KERNEL_TEMPLATE_PLURAL = "jupyterkerneltemplates"
KERNEL_SPEC_PLURAL = "jupyterkernelspecs"
KERNEL_PLURAL = "jupyterkernels"

# Notebook workload
DEFAULT_CONTAINER_NAME = "notebook"
DEFAULT_NOTEBOOK_IMAGE = "jupyter/base-notebook:python-3.9.7"
KERNEL_LAUNCH_COMMAND = "start-notebook.sh"
ARGUMENT_GATEWAY_URL = "--gateway-url"
ARGUMENT_NOTEBOOK_PASSWORD = "--password"

# Gateway workload
GATEWAY_CONTAINER_NAME = "gateway"
DEFAULT_GATEWAY_IMAGE = "elasticjupyter/enterprise-gateway:2.6.0"
GATEWAY_PORT = 8888
GATEWAY_RESPONSE_PORT = 8877
KERNELSPEC_MOUNT_PATH = "/usr/local/share/jupyter/kernels"

# Kernel specs and kernels
KERNEL_CONTAINER_NAME = "kernel"
KERNELSPEC_CONFIGMAP_SUFFIX = "-kernelspec"
DEFAULT_KERNEL_LANGUAGE = "python"
DEFAULT_PROCESS_PROXY = "enterprise_gateway.services.processproxies.k8s.KubernetesProcessProxy"
DEFAULT_KERNEL_IDLE_TIMEOUT = 3600

# Labels
LABEL_NOTEBOOK = "notebook"
LABEL_GATEWAY = "gateway"
LABEL_KERNEL = "kernel"
LABEL_KERNELSPEC = "kernelspec"
LABEL_LANGUAGE = "language"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
MANAGED_BY = "elastic-jupyter-operator"

LOGGER_NAME = "elastic-jupyter"
