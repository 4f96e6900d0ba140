"""API router exposing the notebooks and the workloads generated from them."""

import logging
from typing import cast

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import OperatorSettings
from ..constants import ARGUMENT_NOTEBOOK_PASSWORD, LOGGER_NAME
from ..exceptions import PlatformIOError, ValidationError
from ..generators.notebook import gateway_url, generate_workload
from ..models.kinds import NOTEBOOK
from ..models.notebook import NotebookResponse, WorkloadResponse
from ..models.resources import JupyterNotebook
from ..models.workload import Workload
from ..resolver import Resolver
from ..storage.base import ObjectStore

# Set up logger
logger = logging.getLogger(LOGGER_NAME)

# Create router
api_router = APIRouter(prefix="/api/v1")

REDACTED = "********"


def get_store(request: Request) -> ObjectStore:
    return request.app.state.store


def get_settings(request: Request) -> OperatorSettings:
    return request.app.state.settings


def redact_args(args: list[str]) -> list[str]:
    """Hide the value following a password argument."""
    redacted = list(args)
    for i, arg in enumerate(args[:-1]):
        if arg == ARGUMENT_NOTEBOOK_PASSWORD:
            redacted[i + 1] = REDACTED
    return redacted


def desired_workload(notebook: JupyterNotebook, settings: OperatorSettings) -> Workload:
    return generate_workload(notebook, image=settings.notebook_image, launch_command=settings.kernel_launch_command)


def to_response(notebook: JupyterNotebook, settings: OperatorSettings) -> NotebookResponse:
    try:
        image = desired_workload(notebook, settings).image
    except ValidationError:
        image = None
    gateway = notebook.spec.gateway
    return NotebookResponse(
        name=notebook.name,
        namespace=notebook.namespace,
        created_at=notebook.metadata.creation_timestamp,
        status=notebook.status.get("phase", "Unknown"),
        message=notebook.status.get("message"),
        image=image,
        gateway_url=gateway_url(gateway, notebook.namespace) if gateway is not None and gateway.name else None,
    )


def fetch_notebook(store: ObjectStore, namespace: str, name: str) -> JupyterNotebook:
    try:
        notebook = Resolver(store).fetch(NOTEBOOK, namespace, name)
    except PlatformIOError as e:
        logger.error(f"Failed to read notebook {namespace}/{name}: {e}")
        raise HTTPException(status_code=503, detail="Object store unavailable") from e
    if notebook is None:
        raise HTTPException(status_code=404, detail="Notebook not found")
    return cast(JupyterNotebook, notebook)


@api_router.get("/notebooks", response_model=list[NotebookResponse])
def list_notebooks(
    namespace: str | None = None,
    store: ObjectStore = Depends(get_store),
    settings: OperatorSettings = Depends(get_settings),
) -> list[NotebookResponse]:
    """List Jupyter notebooks, optionally in one namespace."""
    logger.info(f"Received request to list notebooks in {namespace or 'all namespaces'}")
    try:
        bodies = store.list(NOTEBOOK, namespace)
    except PlatformIOError as e:
        logger.error(f"Failed to list notebooks: {e}")
        raise HTTPException(status_code=503, detail="Object store unavailable") from e
    return [to_response(JupyterNotebook.from_body(body), settings) for body in bodies]


@api_router.get("/namespaces/{namespace}/notebooks/{name}", response_model=NotebookResponse)
def get_notebook(
    namespace: str,
    name: str,
    store: ObjectStore = Depends(get_store),
    settings: OperatorSettings = Depends(get_settings),
) -> NotebookResponse:
    """Get details for a specific Jupyter notebook."""
    logger.info(f"Received request to get notebook: {namespace}/{name}")
    return to_response(fetch_notebook(store, namespace, name), settings)


@api_router.get("/namespaces/{namespace}/notebooks/{name}/workload", response_model=WorkloadResponse)
def get_notebook_workload(
    namespace: str,
    name: str,
    store: ObjectStore = Depends(get_store),
    settings: OperatorSettings = Depends(get_settings),
) -> WorkloadResponse:
    """Preview the workload the operator generates for a notebook."""
    logger.info(f"Received request to preview the workload of notebook: {namespace}/{name}")
    notebook = fetch_notebook(store, namespace, name)
    try:
        workload = desired_workload(notebook, settings)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return WorkloadResponse(
        name=workload.name,
        namespace=workload.namespace,
        image=workload.image,
        args=redact_args(workload.args),
        labels=workload.labels,
        annotations=workload.annotations,
    )
