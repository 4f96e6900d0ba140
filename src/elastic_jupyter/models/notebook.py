"""Models for the notebook API responses."""

from datetime import datetime

from pydantic import BaseModel, Field


class NotebookResponse(BaseModel):
    """Model for Jupyter notebook API responses."""

    name: str = Field(..., description="Name of the notebook")
    namespace: str = Field(default="default", description="Namespace of the notebook")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    status: str = Field(default="Unknown", description="Current phase of the notebook")
    message: str | None = Field(None, description="Message of the current phase")
    image: str | None = Field(None, description="Container image the notebook runs")
    gateway_url: str | None = Field(None, description="URL of the gateway running the kernels")


class WorkloadResponse(BaseModel):
    """Model for the workload generated from a notebook."""

    name: str = Field(..., description="Name of the deployment")
    namespace: str = Field(..., description="Namespace of the deployment")
    image: str | None = Field(None, description="Image of the notebook container")
    args: list[str] = Field(default_factory=list, description="Arguments of the notebook container")
    labels: dict[str, str] = Field(default_factory=dict, description="Pod labels")
    annotations: dict[str, str] = Field(default_factory=dict, description="Pod annotations")
