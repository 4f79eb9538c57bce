# deployer/retry.py
"""Fixed-interval polling of an idempotent query.

``poll_until`` is deliberately clock-agnostic: tests pass a fake ``sleep``
(and ``clock`` when a deadline is used) instead of waiting in real time.
"""
import threading
import time
from typing import Any, Callable, NamedTuple, Optional


class PollCancelled(Exception):
    """Raised when the cancellation token is set while polling."""

    def __init__(self, attempts: int):
        super().__init__(f"polling cancelled after {attempts} attempt(s)")
        self.attempts = attempts


class PollOutcome(NamedTuple):
    value: Any
    attempts: int
    succeeded: bool


def poll_until(
    probe: Callable[[], Any],
    accept: Callable[[Any], bool],
    attempts: int,
    interval: float,
    sleep: Optional[Callable[[float], Any]] = None,
    cancel: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
    on_attempt: Optional[Callable[[int, Any], None]] = None,
) -> PollOutcome:
    """
    Call ``probe`` until ``accept`` returns True for its result.

    At most ``attempts`` probes are made with ``interval`` seconds between
    consecutive probes; there is no wait after the last one. Polling also
    stops early once ``clock()`` passes ``deadline``.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def wait():
        if sleep is not None:
            sleep(interval)
            cancelled = cancel is not None and cancel.is_set()
        elif cancel is not None:
            cancelled = cancel.wait(interval)
        else:
            time.sleep(interval)
            cancelled = False
        if cancelled:
            raise PollCancelled(attempt)

    value = None
    attempt = 0
    while attempt < attempts:
        if cancel is not None and cancel.is_set():
            raise PollCancelled(attempt)
        if deadline is not None and clock() >= deadline:
            break
        attempt += 1
        value = probe()
        if on_attempt is not None:
            on_attempt(attempt, value)
        if accept(value):
            return PollOutcome(value, attempt, True)
        if attempt < attempts:
            wait()
    return PollOutcome(value, attempt, False)
