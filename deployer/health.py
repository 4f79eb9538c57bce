# deployer/health.py
import threading
from typing import Callable, Optional

from loguru import logger

from .errors import HealthCheckCancelledError, HealthTimeoutError
from .metrics import HEALTH_POLL_COUNTER
from .retry import PollCancelled, PollOutcome, poll_until
from .schemas import HealthStatus


class HealthPoller:
    """Waits for a freshly started container to report healthy.

    Anything other than ``healthy`` (including a container that cannot be
    inspected yet) counts as "not ready" and polling simply continues.
    """

    def __init__(
        self,
        engine,
        attempts: int = 30,
        interval: float = 2.0,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.engine = engine
        self.attempts = attempts
        self.interval = interval
        self.sleep = sleep
        self.cancel = cancel

    def _probe(self, name: str) -> HealthStatus:
        HEALTH_POLL_COUNTER.inc()
        return self.engine.health_status(name)

    def _log_attempt(self, attempt: int, status: HealthStatus):
        logger.debug(f"Health status ({attempt}/{self.attempts}): {status.value}")

    def wait_until_healthy(self, name: str) -> PollOutcome:
        logger.info("Waiting for container to be healthy...")
        try:
            outcome = poll_until(
                lambda: self._probe(name),
                lambda status: status is HealthStatus.HEALTHY,
                attempts=self.attempts,
                interval=self.interval,
                sleep=self.sleep,
                cancel=self.cancel,
                on_attempt=self._log_attempt,
            )
        except PollCancelled as e:
            raise HealthCheckCancelledError(
                "Health check cancelled before the container became healthy",
                attempts=e.attempts,
            ) from e
        if not outcome.succeeded:
            raise HealthTimeoutError(
                "Container failed to become healthy within timeout",
                attempts=outcome.attempts,
                last_status=outcome.value,
            )
        logger.success("Container is healthy!")
        return outcome
