# tests/conftest.py
import itertools
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from docker.errors import APIError, BuildError, DockerException, ImageNotFound, NotFound
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# ---------------------------------------------------------------------------
# In-memory docker client
# ---------------------------------------------------------------------------
class FakeContainer:
    _ids = itertools.count(1)

    def __init__(self, client, name, image, health_script=None, ports=None):
        self._client = client
        self.id = f"c{next(self._ids):011d}"
        self.name = name
        self.image = image
        self.status = "running"
        self.ports = ports or {}
        self.health = None
        self.health_script = list(health_script or [])
        self.log_lines = [b"nginx started\n", b"GET /health 200\n"]

    @property
    def attrs(self):
        # each inspection advances the scripted health sequence
        if self.health_script:
            self.health = self.health_script.pop(0)
        state = {"Status": self.status}
        if self.health is not None:
            state["Health"] = {"Status": self.health}
        return {"Name": f"/{self.name}", "State": state}

    def stop(self, timeout=10):
        self._client.calls.append(("stop", self.name))
        if self._client.fail_stop:
            raise APIError("stop failed")
        self.status = "exited"

    def remove(self, force=False):
        self._client.calls.append(("remove", self.name))
        if self.status == "running" and not force:
            raise APIError("You cannot remove a running container")
        del self._client.registry[self.name]

    def logs(self, stream=False, follow=False):
        return iter(self.log_lines)


class FakeContainers:
    def __init__(self, client):
        self._client = client

    def list(self, all=False, filters=None):
        self._client.calls.append(("list", all))
        wanted = (filters or {}).get("name", "")
        return [
            c
            for c in self._client.registry.values()
            if wanted in c.name and (all or c.status == "running")
        ]

    def get(self, name):
        try:
            return self._client.registry[name]
        except KeyError:
            raise NotFound(f"No such container: {name}")

    def run(self, image, name=None, detach=False, ports=None, **kwargs):
        self._client.calls.append(("run", name))
        self._client.run_kwargs = dict(kwargs, image=image, name=name, detach=detach, ports=ports)
        if self._client.fail_run:
            raise APIError("port is already allocated")
        if name in self._client.registry:
            raise APIError(f"Conflict. The container name \"/{name}\" is already in use")
        if image not in self._client.built_images:
            raise ImageNotFound(f"No such image: {image}")
        bindings = {
            cport: [{"HostIp": "0.0.0.0", "HostPort": str(hport)}]  # nosec
            for cport, hport in (ports or {}).items()
        }
        container = FakeContainer(self._client, name, image, self._client.health_script, bindings)
        self._client.registry[name] = container
        return container


class FakeImages:
    def __init__(self, client):
        self._client = client

    def build(self, path=None, tag=None, dockerfile=None, rm=False):
        self._client.calls.append(("build", tag))
        if self._client.fail_build:
            raise BuildError("COPY failed: file not found", build_log=[])
        self._client.built_images.add(tag)
        return MagicMock(tags=[tag]), iter([{"stream": "Step 1/1 : FROM nginx:alpine\n"}])

    def remove(self, image=None, force=False):
        self._client.calls.append(("rmi", image))
        if image not in self._client.built_images:
            raise ImageNotFound(f"No such image: {image}")
        self._client.built_images.discard(image)


class FakeDockerClient:
    def __init__(self, health_script=None):
        self.registry = {}
        self.built_images = set()
        self.calls = []
        self.health_script = list(health_script or ["healthy"])
        self.run_kwargs = None
        self.daemon_up = True
        self.fail_build = False
        self.fail_run = False
        self.fail_stop = False
        self.containers = FakeContainers(self)
        self.images = FakeImages(self)

    def ping(self):
        if not self.daemon_up:
            raise DockerException("Error while fetching server API version")
        return True

    def add_container(self, name, image="img:latest", status="running"):
        container = FakeContainer(self, name, image)
        container.status = status
        self.registry[name] = container
        return container

    def mutations(self):
        return [c for c in self.calls if c[0] in ("stop", "remove", "run", "rmi")]


@pytest.fixture
def fake_docker():
    return FakeDockerClient()


# ---------------------------------------------------------------------------
# Never talk to a real daemon
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def docker_from_env():
    with patch("docker.from_env", return_value=MagicMock()) as from_env:
        yield from_env


# ---------------------------------------------------------------------------
# Capture loguru output
# ---------------------------------------------------------------------------
@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(
        lambda m: messages.append((m.record["level"].name, m.record["message"])),
        level="DEBUG",
        format="{message}",
    )
    yield messages
    logger.remove(handler_id)
