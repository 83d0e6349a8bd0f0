"""Tests for the per-repository cron scheduler."""

import logging
import threading
from datetime import UTC, datetime
from typing import List

import pytest

from sweeper.actions import Action
from sweeper.server.scheduler import RepositoryScheduler, _Job

NIGHTLY = "0 3 * * *"


class FixedClock:
    """Returns ``start`` on the first call and ``later`` afterwards."""

    def __init__(self, start: datetime, later: datetime) -> None:
        self.start = start
        self.later = later
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        return self.start if self.calls == 1 else self.later


def test_job_next_run_and_advance() -> None:
    job = _Job(Action(schedule=NIGHTLY), datetime(2024, 6, 1, 0, 0, tzinfo=UTC))
    assert job.next_run == datetime(2024, 6, 1, 3, 0, tzinfo=UTC)
    # Missed runs are skipped
    job.advance(datetime(2024, 6, 3, 12, 0, tzinfo=UTC))
    assert job.next_run == datetime(2024, 6, 4, 3, 0, tzinfo=UTC)


def test_only_scheduled_actions_kept() -> None:
    actions = [Action(schedule=NIGHTLY), Action(triggers={"issues": ["opened"]})]
    scheduler = RepositoryScheduler("owner/repo", actions, lambda action, stop_event: None)
    assert scheduler.actions == [actions[0]]


def test_start_without_schedules_is_noop() -> None:
    scheduler = RepositoryScheduler("owner/repo", [Action(triggers={"issues": ["opened"]})], lambda a, e: None)
    scheduler.start()
    assert scheduler.running is False


def test_due_action_runs_then_stops() -> None:
    ran: List[Action] = []

    def run_action(action: Action, stop_event: threading.Event) -> None:
        ran.append(action)
        stop_event.set()

    action = Action(schedule=NIGHTLY)
    clock = FixedClock(datetime(2024, 6, 1, 2, 59, 59, tzinfo=UTC), datetime(2024, 6, 1, 3, 0, 1, tzinfo=UTC))
    scheduler = RepositoryScheduler("owner/repo", [action], run_action, clock=clock)
    scheduler.start()
    scheduler.join(timeout=5)
    assert ran == [action]
    assert scheduler.running is False


def test_failing_action_does_not_stop_schedule(caplog: pytest.LogCaptureFixture) -> None:
    """An error in one scheduled action is logged and the next due one still runs."""
    calls: List[str] = []
    failing = Action(schedule=NIGHTLY)
    working = Action(schedule=NIGHTLY)

    def run_action(action: Action, stop_event: threading.Event) -> None:
        if action is failing:
            calls.append("failing")
            raise RuntimeError("boom")
        calls.append("working")
        stop_event.set()

    clock = FixedClock(datetime(2024, 6, 1, 2, 59, 59, tzinfo=UTC), datetime(2024, 6, 1, 3, 0, 1, tzinfo=UTC))
    scheduler = RepositoryScheduler("owner/repo", [failing, working], run_action, clock=clock)
    with caplog.at_level(logging.ERROR, logger="sweeper.server.scheduler"):
        scheduler.start()
        scheduler.join(timeout=5)
    assert calls == ["failing", "working"]
    assert "Error executing scheduled task" in caplog.text


def test_stop_interrupts_wait() -> None:
    scheduler = RepositoryScheduler("owner/repo", [Action(schedule=NIGHTLY)], lambda a, e: None)
    scheduler.start()
    assert scheduler.running is True
    scheduler.stop()
    scheduler.join(timeout=5)
    assert scheduler.running is False
