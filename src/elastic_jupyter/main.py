"""Main entrypoint for the elastic Jupyter operator."""

import asyncio
import logging

import kopf
import uvicorn
from fastapi import FastAPI

from elastic_jupyter.api.router import api_router
from elastic_jupyter.config import OperatorSettings
from elastic_jupyter.constants import LOGGER_NAME
from elastic_jupyter.controllers import handlers  # noqa: F401  # registers the kopf handlers
from elastic_jupyter.controllers.registry import build_reconcilers
from elastic_jupyter.storage.kubernetes import KubernetesStore, load_config

settings = OperatorSettings()

# Set up logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(LOGGER_NAME)


# Initialize FastAPI app
app = FastAPI(
    title="Elastic Jupyter Operator",
    description="Kubernetes operator managing Jupyter notebooks, gateways and kernels",
    version="0.1.0",
)
app.state.settings = settings

# Add API routes
app.include_router(api_router)


# Define the entry point
def run() -> None:
    """Run both kopf operator and FastAPI server in a single process."""
    load_config()
    store = KubernetesStore()
    app.state.store = store
    memo = kopf.Memo(settings=settings, reconcilers=build_reconcilers(store, settings))
    logger.info("Starting elastic Jupyter operator")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Run kopf operator
    kopf_task = loop.create_task(
        kopf.operator(
            clusterwide=settings.clusterwide and not settings.namespace,
            namespaces=[settings.namespace] if settings.namespace else [],
            standalone=True,
            memo=memo,
        )
    )

    # Run FastAPI server
    config = uvicorn.Config(app=app, host=settings.api_host, port=settings.api_port)
    server = uvicorn.Server(config)
    api_task = loop.create_task(server.serve())

    # Run both tasks
    loop.run_until_complete(asyncio.gather(kopf_task, api_task))


if __name__ == "__main__":
    run()
