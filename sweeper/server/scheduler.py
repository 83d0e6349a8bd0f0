"""Per-repository cron scheduler for actions with a schedule."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List

from croniter import croniter

from sweeper.actions import Action

LOG = logging.getLogger("sweeper.server.scheduler")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Job:
    def __init__(self, action: Action, start: datetime) -> None:
        self.action = action
        self._iter = croniter(action.schedule, start)
        self.next_run: datetime = self._iter.get_next(datetime)

    def advance(self, now: datetime) -> None:
        # Missed fire times are skipped, not replayed
        while self.next_run <= now:
            self.next_run = self._iter.get_next(datetime)


class RepositoryScheduler:
    """Runs each scheduled action of one repository from a daemon thread.

    ``run_action(action)`` is called on every tick; errors are logged and the
    schedule goes on. ``stop()`` interrupts the wait and any running stock
    scan at its next page boundary (see ``stop_event``).
    """

    def __init__(
        self,
        repository: str,
        actions: List[Action],
        run_action: Callable[[Action, threading.Event], None],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.actions = [a for a in actions if a.schedule]
        self._run_action = run_action
        self._clock = clock
        self.stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if not self.actions or self._thread is not None:
            return
        for action in self.actions:
            LOG.debug("Registering schedule | repo=%s | schedule=%s", self.repository, action.schedule)
        self._thread = threading.Thread(
            target=self._loop,
            name=f"sweeper-cron-{self.repository}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self.stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        start = self._clock()
        jobs = [_Job(action, start) for action in self.actions]
        while not self.stop_event.is_set():
            due = min(job.next_run for job in jobs)
            wait = (due - self._clock()).total_seconds()
            if wait > 0 and self.stop_event.wait(wait):
                return
            now = self._clock()
            for job in jobs:
                if job.next_run > now or self.stop_event.is_set():
                    continue
                try:
                    self._run_action(job.action, self.stop_event)
                except Exception as e:
                    LOG.exception("Error executing scheduled task | repo=%s | error=%s", self.repository, e)
                job.advance(self._clock())
