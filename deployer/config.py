# deployer/config.py
"""Deployment target configuration.

The target is built once at startup and handed to every component. Defaults
match the static portfolio site; any value can be overridden through
``DEPLOY_*`` environment variables or a local ``.env`` file.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator

from .network import validate_port

CONTAINER_PORT = 8080
IMAGE_TAG = "latest"
DEFAULT_NAME = "devops-portfolio"

_NANOSECONDS = 1_000_000_000

_ENV_FIELDS = {
    "DEPLOY_PROJECT_NAME": "project_name",
    "DEPLOY_IMAGE_NAME": "image_name",
    "DEPLOY_CONTAINER_NAME": "container_name",
    "DEPLOY_HOST_PORT": "host_port",
    "DEPLOY_BUILD_CONTEXT": "build_context",
    "DEPLOY_DOCKERFILE": "dockerfile",
    "DEPLOY_PUSHGATEWAY_URL": "pushgateway_url",
}


class HealthCheckSettings(BaseModel):
    """Runtime-managed health check attached to every new container."""

    model_config = ConfigDict(frozen=True)

    path: str = "/health"
    interval: int = 30
    timeout: int = 10
    retries: int = 3

    def command(self, container_port: int = CONTAINER_PORT) -> str:
        return f"curl -f http://localhost:{container_port}{self.path} || exit 1"

    def to_docker(self, container_port: int = CONTAINER_PORT) -> Dict[str, Any]:
        # docker SDK expects durations in nanoseconds
        return {
            "test": ["CMD-SHELL", self.command(container_port)],
            "interval": self.interval * _NANOSECONDS,
            "timeout": self.timeout * _NANOSECONDS,
            "retries": self.retries,
        }


class DeploymentTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_name: str = DEFAULT_NAME
    image_name: str = DEFAULT_NAME
    container_name: str = DEFAULT_NAME
    host_port: int = 8080
    container_port: int = CONTAINER_PORT
    image_tag: str = IMAGE_TAG
    build_context: str = "."
    dockerfile: str = "Dockerfile"
    health: HealthCheckSettings = HealthCheckSettings()
    poll_attempts: int = 30
    poll_interval: float = 2.0
    pushgateway_url: Optional[str] = None

    @field_validator("host_port", "container_port", mode="before")
    @classmethod
    def _check_port(cls, value):
        port = validate_port(value)
        if port is None:
            raise ValueError(f"invalid port: {value!r}")
        return port

    @field_validator("project_name", "image_name", "container_name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("poll_attempts")
    @classmethod
    def _check_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("poll_attempts must be at least 1")
        return value

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @property
    def url(self) -> str:
        return f"http://localhost:{self.host_port}"

    @property
    def health_url(self) -> str:
        return f"{self.url}{self.health.path}"

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "DeploymentTarget":
        """Build the target from ``DEPLOY_*`` variables, loading ``.env`` first."""
        if env is None:
            try:
                env_path = Path(".env")
                if env_path.exists():
                    load_dotenv(env_path)
            except Exception as e:  # pragma: no cover
                logger.warning(f"Failed to load .env file: {e}")
            env = dict(os.environ)

        overrides: Dict[str, Any] = {}
        for var, field in _ENV_FIELDS.items():
            value = env.get(var)
            if value:
                overrides[field] = value
        return cls(**overrides)
