"""Dispatcher: matches events against actions and runs their operations.

Holds the common actions (from the server config) and, per repository, the
actions fetched from the repository's own configuration file together with
that repository's cron scheduler.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

from sweeper.actions import Action, ensure_valid_actions, load_actions
from sweeper.adapters.base import GitHubClient, GitPlatformError
from sweeper.adapters.github import make_client
from sweeper.config import AppConfig, RunConfig
from sweeper.models import Item
from sweeper.operations import OperationHooks
from sweeper.runner import OperationRunner
from sweeper.server.events import decode_event
from sweeper.server.scheduler import RepositoryScheduler

LOG = logging.getLogger("sweeper.server.dispatcher")

# Seconds to wait for a scheduler thread on shutdown
STOP_TIMEOUT = 10.0


class RepositoryConfig:
    """Actions of one repository and the scheduler running its scheduled ones."""

    def __init__(self, actions: List[Action], scheduler: RepositoryScheduler) -> None:
        self.actions = actions
        self.scheduler = scheduler


class Dispatcher:
    """Single entry point for events coming from any listener."""

    def __init__(
        self,
        config: AppConfig,
        client_factory: Callable[[RunConfig], GitHubClient] = make_client,
    ) -> None:
        self.config = config
        self.common_actions: List[Action] = ensure_valid_actions(list(config.common_configuration))
        self._client_factory = client_factory
        self._client: GitHubClient | None = None
        self._lock = threading.Lock()
        self._repositories: Dict[str, RepositoryConfig] = {}
        self.hooks = OperationHooks(refresh_repository=self.refresh_repository_configuration)

    @property
    def client(self) -> GitHubClient:
        if self._client is None:
            self._client = self._client_factory(self.config.run)
        return self._client

    def run_config(self, repository: str) -> RunConfig:
        """Execution config of the server, targeted at one repository."""
        return self.config.run.model_copy(update={"repository": repository})

    def repository_actions(self, repository: str) -> List[Action]:
        with self._lock:
            entry = self._repositories.get(repository)
            return entry.actions if entry is not None else []

    def candidate_actions(self, repository: str) -> List[Action]:
        """Common actions first, then the repository's own."""
        return self.common_actions + self.repository_actions(repository)

    def handle_event(self, event_type: str, body: bytes | str | Dict[str, Any]) -> int:
        """Run every action triggered by the event; return the number of actions run.

        The first operation error aborts the dispatch and propagates.
        """
        event = decode_event(event_type, body)
        executed = 0
        for item in event.items:
            for action in self.candidate_actions(item.repository):
                if not action.trigger_contains(event.type, event.action):
                    continue
                self.execute_action(action, item)
                executed += 1
        if event.items and not executed:
            LOG.debug("No matching action | event=%s | action=%s | repo=%s", event.type, event.action, event.repository)
        return executed

    def execute_action(self, action: Action, item: Item) -> None:
        config = self.run_config(item.repository)
        for op_config in action.operations:
            LOG.info(
                "Running operation | operation=%s | repository=%s | number=%s",
                op_config.type,
                item.repository,
                item.number,
            )
            runner = OperationRunner.from_config(config, op_config, self.hooks, self.client)
            runner.handle(item)

    def execute_action_on_all_items(
        self,
        repository: str,
        action: Action,
        stop_event: threading.Event | None = None,
    ) -> None:
        config = self.run_config(repository)
        for op_config in action.operations:
            LOG.info("Running operation on stock | operation=%s | repository=%s", op_config.type, repository)
            runner = OperationRunner.from_config(config, op_config, self.hooks, self.client)
            runner.handle_stock(stop_event)

    def refresh_repository_configuration(self, repository: str) -> None:
        """Fetch the repository configuration file and install it.

        A missing file installs an empty action list. Fetch errors, bad YAML
        and invalid actions raise and leave the current configuration alone.
        """
        try:
            text = self.client.get_raw_file(repository, self.config.repository_config_file)
        except GitPlatformError as err:
            raise GitPlatformError(
                f"failed to get configuration for repository {repository!r}: {err}",
                status_code=err.status_code,
            ) from err
        if text is None:
            LOG.debug("Configuration file missing | repo=%s", repository)
            text = ""
        self.update_repository_configuration(repository, text)

    def update_repository_configuration(self, repository: str, text: str) -> None:
        actions = ensure_valid_actions(load_actions(text))
        # Scheduled common actions run on every configured repository
        scheduler = RepositoryScheduler(
            repository,
            self.common_actions + actions,
            lambda action, stop_event: self.execute_action_on_all_items(repository, action, stop_event),
        )
        with self._lock:
            previous = self._repositories.get(repository)
            if previous is not None:
                previous.scheduler.stop()
            scheduler.start()
            self._repositories[repository] = RepositoryConfig(actions, scheduler)
        LOG.info("Updated configuration | repo=%s | actions=%s | scheduled=%s", repository, len(actions), len(scheduler.actions))

    def fetch_repositories_configs(self) -> None:
        """Load every configured repository; failures are logged and skipped."""
        for repository in self.config.repositories:
            try:
                self.refresh_repository_configuration(repository)
            except Exception as e:
                LOG.warning("Failed to load configuration | repo=%s | error=%s", repository, e)

    def stop(self) -> None:
        """Stop every repository scheduler and wait for their threads."""
        with self._lock:
            schedulers = [entry.scheduler for entry in self._repositories.values()]
        for scheduler in schedulers:
            scheduler.stop()
        for scheduler in schedulers:
            scheduler.join(timeout=STOP_TIMEOUT)
            if scheduler.running:
                LOG.warning("Scheduler still running after stop | repo=%s", scheduler.repository)
