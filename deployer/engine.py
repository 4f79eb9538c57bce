# deployer/engine.py
from typing import Any, Dict, Iterator, List, Optional

import docker
import requests
from docker.errors import DockerException
from loguru import logger

from .schemas import HealthStatus


class ContainerEngine:
    """Thin wrapper over the docker SDK, addressing containers by name only.

    Mutating calls let docker exceptions propagate; callers decide which of
    them are fatal. ``health_status`` is the one query that never raises.
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    def _ensure_client(self):
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    @property
    def client(self):
        return self._ensure_client()

    @client.setter
    def client(self, value):
        self._client = value

    def ping(self) -> bool:
        return bool(self.client.ping())

    def build_image(self, path: str, tag: str, dockerfile: str = "Dockerfile") -> str:
        client = self.client
        _, build_logs = client.images.build(
            path=path, tag=tag, dockerfile=dockerfile, rm=True
        )
        for chunk in build_logs or []:
            line = chunk.get("stream", "").rstrip() if isinstance(chunk, dict) else ""
            if line:
                logger.debug(line)
        return tag

    def find_containers(self, name: str, all: bool = False) -> List[Any]:
        """Return containers named exactly ``name``; docker's filter matches substrings."""
        containers = self.client.containers.list(all=all, filters={"name": name})
        return [c for c in containers if getattr(c, "name", None) == name]

    def stop_container(self, name: str, timeout: int = 10):
        self.client.containers.get(name).stop(timeout=timeout)

    def remove_container(self, name: str, force: bool = False):
        self.client.containers.get(name).remove(force=force)

    def run_container(self, image: str, **kwargs):
        return self.client.containers.run(image, **kwargs)

    @staticmethod
    def _raw_health(attrs: Dict) -> Optional[str]:
        state = (attrs or {}).get("State")
        if not isinstance(state, dict):
            return None
        return (state.get("Health") or {}).get("Status")

    def health_status(self, name: str) -> HealthStatus:
        try:
            container = self.client.containers.get(name)
            return HealthStatus.parse(self._raw_health(container.attrs))
        except (DockerException, requests.exceptions.RequestException) as e:
            # container may not be inspectable yet right after creation
            logger.debug(f"Health query for {name} failed: {e}")
            return HealthStatus.UNKNOWN

    def container_summary(self, name: str) -> List[Dict]:
        summary = []
        for c in self.find_containers(name, all=False):
            health = self._raw_health(c.attrs)
            summary.append(
                {
                    "name": c.name,
                    "status": c.status,
                    "health": HealthStatus.parse(health) if health else None,
                    "ports": c.ports,
                }
            )
        return summary

    def stream_logs(self, name: str, follow: bool = True) -> Iterator[bytes]:
        container = self.client.containers.get(name)
        return container.logs(stream=True, follow=follow)

    def remove_image(self, ref: str):
        self.client.images.remove(image=ref)
