"""Operator settings.

Every value can be overridden with an environment variable prefixed with
``ELASTIC_JUPYTER_`` (for example ``ELASTIC_JUPYTER_LOG_LEVEL=DEBUG``) or from
a ``.env`` file in the working directory.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_GATEWAY_IMAGE, DEFAULT_NOTEBOOK_IMAGE, KERNEL_LAUNCH_COMMAND


class OperatorSettings(BaseSettings):
    """Settings for the operator process and its reconcilers."""

    model_config = SettingsConfigDict(env_prefix="ELASTIC_JUPYTER_", env_file=".env", extra="ignore")

    log_level: str = Field(default="INFO", description="Log level")

    # Reconcile loop
    reference_retry_seconds: float = Field(default=10.0, gt=0, description="Requeue delay while a reference is missing")
    api_retry_attempts: int = Field(default=5, ge=1, description="Attempts for conflicting or failing API calls")
    api_retry_initial_seconds: float = Field(default=0.5, ge=0, description="Exponential backoff base")
    api_retry_max_seconds: float = Field(default=8.0, ge=0, description="Exponential backoff cap")
    conflict_jitter_seconds: float = Field(default=0.2, ge=0, description="Max random delay before a conflict retry")
    resync_seconds: float = Field(default=60.0, gt=0, description="Interval of the periodic drift resync")

    # Generated workloads
    notebook_image: str = Field(default=DEFAULT_NOTEBOOK_IMAGE, description="Image for gateway-only notebooks")
    gateway_image: str = Field(default=DEFAULT_GATEWAY_IMAGE, description="Default enterprise gateway image")
    kernel_launch_command: str = Field(default=KERNEL_LAUNCH_COMMAND, description="Notebook launch command")

    # Process
    api_host: str = Field(default="0.0.0.0", description="HTTP API bind address")
    api_port: int = Field(default=8000, description="HTTP API bind port")
    clusterwide: bool = Field(default=True, description="Watch all namespaces")
    namespace: str | None = Field(default=None, description="Namespace to watch when not clusterwide")
