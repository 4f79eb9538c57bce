import threading

import pytest

from deployer.retry import PollCancelled, poll_until


def _scripted(values):
    calls = []
    values = list(values)

    def probe():
        calls.append(1)
        return values.pop(0) if values else None

    return probe, calls


def test_returns_on_first_accepted_value():
    probe, calls = _scripted(["a", "b", "ok"])
    sleeps = []

    outcome = poll_until(probe, lambda v: v == "ok", attempts=5, interval=2, sleep=sleeps.append)

    assert outcome.succeeded is True
    assert outcome.value == "ok"
    assert outcome.attempts == 3
    assert len(calls) == 3
    assert sleeps == [2, 2]


def test_accepted_immediately_never_sleeps():
    probe, _ = _scripted(["ok"])
    sleeps = []

    outcome = poll_until(probe, lambda v: v == "ok", attempts=5, interval=2, sleep=sleeps.append)

    assert outcome.attempts == 1
    assert sleeps == []


def test_exhaustion_makes_every_attempt_without_trailing_sleep():
    probe, calls = _scripted([])
    sleeps = []

    outcome = poll_until(probe, lambda v: False, attempts=30, interval=2, sleep=sleeps.append)

    assert outcome.succeeded is False
    assert outcome.attempts == 30
    assert len(calls) == 30
    assert sum(sleeps) == 58


def test_invalid_attempts():
    with pytest.raises(ValueError):
        poll_until(lambda: None, lambda v: True, attempts=0, interval=1)


def test_cancel_before_first_attempt():
    cancel = threading.Event()
    cancel.set()
    probe, calls = _scripted(["ok"])

    with pytest.raises(PollCancelled) as exc:
        poll_until(probe, lambda v: True, attempts=3, interval=1, cancel=cancel)

    assert exc.value.attempts == 0
    assert calls == []


def test_cancel_during_wait_with_injected_sleep():
    cancel = threading.Event()
    probe, calls = _scripted([])

    with pytest.raises(PollCancelled) as exc:
        poll_until(
            probe,
            lambda v: False,
            attempts=10,
            interval=1,
            sleep=lambda s: cancel.set(),
            cancel=cancel,
        )

    assert exc.value.attempts == 1
    assert len(calls) == 1


def test_cancel_event_interrupts_real_wait():
    cancel = threading.Event()
    probe, calls = _scripted([])

    def set_then_probe():
        cancel.set()
        return probe()

    # interval is long; Event.wait returns immediately because the flag is already set
    with pytest.raises(PollCancelled):
        poll_until(set_then_probe, lambda v: False, attempts=3, interval=60, cancel=cancel)

    assert len(calls) == 1


def test_deadline_stops_polling():
    now = [0.0]
    probe, calls = _scripted([])

    def sleep(seconds):
        now[0] += seconds

    outcome = poll_until(
        probe,
        lambda v: False,
        attempts=30,
        interval=2,
        sleep=sleep,
        deadline=5.0,
        clock=lambda: now[0],
    )

    assert outcome.succeeded is False
    # probes at t=0, 2, 4; t=6 is past the deadline
    assert outcome.attempts == 3
    assert len(calls) == 3


def test_on_attempt_callback():
    seen = []
    probe, _ = _scripted(["x", "ok"])

    poll_until(
        probe,
        lambda v: v == "ok",
        attempts=3,
        interval=0,
        sleep=lambda s: None,
        on_attempt=lambda n, v: seen.append((n, v)),
    )

    assert seen == [(1, "x"), (2, "ok")]
