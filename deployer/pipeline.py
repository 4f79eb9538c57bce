# deployer/pipeline.py
"""Build, replace, start and health-check the site container.

Each step either completes or raises a DeployError subclass; the commands
below simply run their steps in order, so the first failure stops the rest.
There is no rollback: a failed run or health check leaves whatever state
the runtime is in for the operator to inspect.
"""
import codecs
import sys
import time
from contextlib import contextmanager
from typing import Dict, Optional, TextIO

import requests
from docker.errors import DockerException, NotFound
from loguru import logger

from .config import DeploymentTarget
from .engine import ContainerEngine
from .errors import (
    CleanupError,
    ContainerNotFoundError,
    ContainerRunError,
    ImageBuildError,
    RuntimeUnavailableError,
)
from .health import HealthPoller
from .metrics import DEPLOY_DURATION_GAUGE
from .reporter import Reporter
from .schemas import DeploymentResult

RUNTIME_ERRORS = (DockerException, requests.exceptions.RequestException)
# docker-py rejects a missing build context with a bare TypeError before any
# API call; unreadable context files surface as OSError.
BUILD_ERRORS = RUNTIME_ERRORS + (TypeError, OSError)


@contextmanager
def translate_errors(error_cls, message: str, errors=RUNTIME_ERRORS):
    try:
        yield
    except errors as e:
        raise error_cls(f"{message}: {e}") from e


class Deployer:
    def __init__(
        self,
        target: DeploymentTarget,
        engine: Optional[ContainerEngine] = None,
        poller: Optional[HealthPoller] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.target = target
        self.engine = engine or ContainerEngine()
        self.poller = poller or HealthPoller(
            self.engine, attempts=target.poll_attempts, interval=target.poll_interval
        )
        self.reporter = reporter or Reporter(target, self.engine)

    # -------------------------
    # STEPS
    # -------------------------
    def check_runtime(self):
        with translate_errors(
            RuntimeUnavailableError, "Docker is not running. Please start Docker and try again"
        ):
            reachable = self.engine.ping()
        if not reachable:
            raise RuntimeUnavailableError("Docker is not running. Please start Docker and try again")
        logger.info("Docker is running")

    def build_image(self) -> str:
        t = self.target
        logger.info(f"Building Docker image: {t.image_name}")
        with translate_errors(ImageBuildError, "Failed to build Docker image", BUILD_ERRORS):
            self.engine.build_image(t.build_context, t.image_ref, dockerfile=t.dockerfile)
        logger.success("Docker image built successfully")
        return t.image_ref

    def cleanup(self) -> bool:
        """Stop and remove any container holding our name. Returns True if one existed."""
        name = self.target.container_name
        force = False

        with translate_errors(RuntimeUnavailableError, "Could not list containers"):
            running = self.engine.find_containers(name, all=False)
        if running:
            logger.info(f"Stopping existing container: {name}")
            try:
                self.engine.stop_container(name)
            except RUNTIME_ERRORS as e:
                logger.warning(f"Failed to stop {name}: {e}")
                force = True

        # second query is independent of the first; the stop may have failed
        with translate_errors(RuntimeUnavailableError, "Could not list containers"):
            existing = self.engine.find_containers(name, all=True)
        if existing:
            logger.info(f"Removing existing container: {name}")
            try:
                self.engine.remove_container(name, force=force)
            except NotFound:
                logger.debug(f"Container {name} disappeared before removal")
            except RUNTIME_ERRORS as e:
                raise CleanupError(f"Failed to remove container {name}: {e}") from e

        return bool(running or existing)

    def run(self):
        t = self.target
        logger.info(f"Deploying container: {t.container_name}")
        with translate_errors(ContainerRunError, "Failed to start container"):
            container = self.engine.run_container(
                t.image_ref,
                name=t.container_name,
                detach=True,
                restart_policy={"Name": "unless-stopped"},
                ports={f"{t.container_port}/tcp": t.host_port},
                healthcheck=t.health.to_docker(t.container_port),
            )
        logger.success("Container deployed successfully")
        return container

    # -------------------------
    # COMMANDS
    # -------------------------
    def build(self) -> str:
        self.check_runtime()
        return self.build_image()

    def deploy(self) -> DeploymentResult:
        t = self.target
        started = time.monotonic()
        logger.info(f"Starting deployment of {t.project_name}")

        self.check_runtime()
        self.build_image()
        self.cleanup()
        container = self.run()
        outcome = self.poller.wait_until_healthy(t.container_name)
        self.reporter.report()

        DEPLOY_DURATION_GAUGE.set(time.monotonic() - started)
        logger.success("Deployment completed successfully!")
        return DeploymentResult(
            container_id=getattr(container, "id", None),
            container_name=t.container_name,
            image_ref=t.image_ref,
            url=t.url,
            health_url=t.health_url,
            status=outcome.value,
            attempts=outcome.attempts,
        )

    def stop(self) -> bool:
        name = self.target.container_name
        logger.info(f"Stopping {name}")
        with translate_errors(RuntimeUnavailableError, "Could not list containers"):
            running = self.engine.find_containers(name, all=False)
        if not running:
            logger.warning("Container not running")
            return False
        try:
            self.engine.stop_container(name)
        except NotFound:
            logger.warning("Container not running")
            return False
        except RUNTIME_ERRORS as e:
            raise CleanupError(f"Failed to stop container {name}: {e}") from e
        logger.success(f"Stopped {name}")
        return True

    def logs(self, out: Optional[TextIO] = None):
        name = self.target.container_name
        out = out or sys.stdout
        try:
            stream = self.engine.stream_logs(name, follow=True)
        except NotFound as e:
            raise ContainerNotFoundError(f"No such container: {name}") from e
        except RUNTIME_ERRORS as e:
            raise RuntimeUnavailableError(f"Could not read logs for {name}: {e}") from e

        with translate_errors(RuntimeUnavailableError, f"Log stream for {name} failed"):
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            for chunk in stream:
                if isinstance(chunk, bytes):
                    chunk = decoder.decode(chunk)
                out.write(chunk)
                out.flush()
            out.write(decoder.decode(b"", final=True))
            out.flush()

    def clean(self) -> Dict[str, bool]:
        t = self.target
        container_removed = self.cleanup()
        if not container_removed:
            logger.warning("Container not found")

        image_removed = False
        try:
            self.engine.remove_image(t.image_ref)
            image_removed = True
            logger.info(f"Removed image: {t.image_ref}")
        except NotFound:
            logger.warning("Image not found")
        except RUNTIME_ERRORS as e:
            raise CleanupError(f"Failed to remove image {t.image_ref}: {e}") from e

        logger.success("Cleanup completed")
        return {"container_removed": container_removed, "image_removed": image_removed}
