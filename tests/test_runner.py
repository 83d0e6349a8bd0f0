"""Tests for the runner: single items, paginated stock runs, dry-run and delay."""

import logging
import threading
from typing import Callable, List, Tuple
from unittest.mock import patch

import pytest
from fakes import REPO, FakeGitHubClient, make_issue, make_pr

from sweeper.actions import OperationConfig
from sweeper.adapters.base import GitPlatformError, IssueListOptions, PullRequestListOptions
from sweeper.config import RunConfig
from sweeper.errors import ConfigError, UnsupportedBatchOperation
from sweeper.filters import Filters, make_filter
from sweeper.models import Item
from sweeper.operations import AcceptedType, Context, FilterResult, Operation
from sweeper.runner import IssueLister, OperationRunner, PullRequestLister, run_on_every_item, run_single


class RecordingOperation(Operation[object]):
    """Decides with ``decide(item)`` and records every call."""

    name = "recording"

    def __init__(
        self,
        decide: Callable[[Item], FilterResult] = lambda item: FilterResult.ACCEPT,
        accepted: AcceptedType = AcceptedType.ALL,
        listable: bool = True,
    ) -> None:
        self.decide = decide
        self.accepted = accepted
        self.listable = listable
        self.filtered: List[int] = []
        self.applied: List[Tuple[int, object]] = []
        self.payloads: List[object] = []

    def accepts(self) -> AcceptedType:
        return self.accepted

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, object | None]:
        self.filtered.append(item.number)
        payload = object()
        self.payloads.append(payload)
        return self.decide(item), payload

    def describe(self, ctx: Context, item: Item, payload: object) -> str:
        return f"Recording item #{item.number}"

    def apply(self, ctx: Context, item: Item, payload: object) -> None:
        self.applied.append((item.number, payload))

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        return IssueListOptions() if self.listable else None

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return PullRequestListOptions() if self.listable else None


@pytest.fixture
def client() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def config() -> RunConfig:
    return RunConfig(repository=REPO)


def test_run_single_applies_with_filter_payload(config: RunConfig, client: FakeGitHubClient) -> None:
    """apply receives the very payload filter returned."""
    op = RecordingOperation()
    result = run_single(config, op, Item.from_issue(make_issue(1)), client=client)
    assert result is FilterResult.ACCEPT
    assert op.applied == [(1, op.payloads[0])]


def test_run_single_dry_run_describes_only(client: FakeGitHubClient, caplog: pytest.LogCaptureFixture) -> None:
    """Dry-run logs the description at INFO and never applies."""
    op = RecordingOperation()
    config = RunConfig(repository=REPO, dry_run=True)
    with caplog.at_level(logging.INFO, logger="sweeper.runner"):
        run_single(config, op, Item.from_issue(make_issue(4)), client=client)
    assert op.applied == []
    assert "Recording item #4" in caplog.text
    assert "dry_run=True" in caplog.text


def test_run_single_global_filters_skip_operation(config: RunConfig, client: FakeGitHubClient) -> None:
    """An item rejected by the global filters never reaches the operation."""
    op = RecordingOperation()
    filters = Filters([make_filter("is", "pr")])
    result = run_single(config, op, Item.from_issue(make_issue(1)), filters, client=client)
    assert result is FilterResult.REJECT
    assert op.filtered == []


def test_run_single_reject_does_not_apply(config: RunConfig, client: FakeGitHubClient) -> None:
    op = RecordingOperation(decide=lambda item: FilterResult.REJECT)
    assert run_single(config, op, Item.from_issue(make_issue(1)), client=client) is FilterResult.REJECT
    assert op.applied == []


def test_run_single_requires_repository(client: FakeGitHubClient) -> None:
    with pytest.raises(ConfigError):
        run_single(RunConfig(), RecordingOperation(), Item.from_issue(make_issue(1)), client=client)


def test_run_on_every_item_walks_all_pages(config: RunConfig, client: FakeGitHubClient) -> None:
    client.issue_pages = [[make_issue(1), make_issue(2)], [make_issue(3)]]
    op = RecordingOperation()
    run_on_every_item(config, op, IssueLister(), client=client)
    assert [n for n, _ in op.applied] == [1, 2, 3]
    assert [c[2] for c in client.calls if c[0] == "list_issues"] == [1, 2]


def test_terminal_stops_whole_run(config: RunConfig, client: FakeGitHubClient) -> None:
    """TERMINAL ends the run: no later item or page is looked at."""
    client.issue_pages = [[make_issue(1), make_issue(2), make_issue(3)], [make_issue(4)]]
    op = RecordingOperation(decide=lambda item: FilterResult.TERMINAL if item.number == 2 else FilterResult.ACCEPT)
    run_on_every_item(config, op, IssueLister(), client=client)
    assert op.filtered == [1, 2]
    assert [n for n, _ in op.applied] == [1]
    assert [c[2] for c in client.calls if c[0] == "list_issues"] == [1]


def test_apply_error_aborts_whole_run(config: RunConfig, client: FakeGitHubClient) -> None:
    """An error while applying stops the run at that item: no later item or page."""

    class FailingOperation(RecordingOperation):
        def apply(self, ctx: Context, item: Item, payload: object) -> None:
            raise GitPlatformError("500: server error", status_code=500)

    client.issue_pages = [[make_issue(1), make_issue(2)], [make_issue(3)]]
    op = FailingOperation()
    with pytest.raises(GitPlatformError):
        run_on_every_item(config, op, IssueLister(), client=client)
    assert op.filtered == [1]
    assert [c[2] for c in client.calls if c[0] == "list_issues"] == [1]


def test_delay_between_pages_only(client: FakeGitHubClient) -> None:
    """The delay is waited between pages, never after the last one."""
    client.issue_pages = [[make_issue(1)], [make_issue(2)], [make_issue(3)]]
    config = RunConfig(repository=REPO, delay=1.5)
    with patch("sweeper.runner.time.sleep") as sleep:
        run_on_every_item(config, RecordingOperation(), IssueLister(), client=client)
    assert sleep.call_count == 2
    sleep.assert_called_with(1.5)


def test_no_delay_after_terminal(client: FakeGitHubClient) -> None:
    client.issue_pages = [[make_issue(1)], [make_issue(2)]]
    config = RunConfig(repository=REPO, delay=5)
    op = RecordingOperation(decide=lambda item: FilterResult.TERMINAL)
    with patch("sweeper.runner.time.sleep") as sleep:
        run_on_every_item(config, op, IssueLister(), client=client)
    sleep.assert_not_called()


def test_stop_event_cancels_before_next_page(client: FakeGitHubClient) -> None:
    client.issue_pages = [[make_issue(1)], [make_issue(2)]]
    stop = threading.Event()
    op = RecordingOperation(decide=lambda item: (stop.set(), FilterResult.ACCEPT)[1])
    run_on_every_item(RunConfig(repository=REPO, delay=30), op, IssueLister(), client=client, stop_event=stop)
    assert op.filtered == [1]


def test_unsupported_batch_operation(config: RunConfig, client: FakeGitHubClient) -> None:
    op = RecordingOperation(listable=False)
    with pytest.raises(UnsupportedBatchOperation):
        run_on_every_item(config, op, IssueLister(), client=client)
    with pytest.raises(UnsupportedBatchOperation):
        run_on_every_item(config, op, PullRequestLister(), client=client)


def test_handle_stock_issues_then_pull_requests(config: RunConfig, client: FakeGitHubClient) -> None:
    client.issue_pages = [[make_issue(1)]]
    client.pr_pages = [[make_pr(2)]]
    op = RecordingOperation()
    OperationRunner(config, op, client=client).handle_stock()
    assert [n for n, _ in op.applied] == [1, 2]


def test_handle_stock_respects_is_filter_and_accepted_kinds(config: RunConfig, client: FakeGitHubClient) -> None:
    """Kinds excluded by an is filter or by the operation are not even listed."""
    client.issue_pages = [[make_issue(1)]]
    client.pr_pages = [[make_pr(2)]]
    OperationRunner(config, RecordingOperation(), Filters([make_filter("is", "pr")]), client).handle_stock()
    OperationRunner(config, RecordingOperation(accepted=AcceptedType.ISSUES), client=client).handle_stock()
    listed = [c[0] for c in client.calls]
    assert listed == ["list_pull_requests", "list_issues"]


def test_runner_from_config(config: RunConfig, client: FakeGitHubClient) -> None:
    op_config = OperationConfig(type="random-assign", filters={"is": "issue"}, settings={"users": ["alice"]})
    runner = OperationRunner.from_config(config, op_config, client=client)
    assert runner.operation.name == "random-assign"
    assert len(runner.filters) == 1
    assert runner.handle(Item.from_issue(make_issue(5))) is FilterResult.ACCEPT
    assert client.writes() == [("add_assignees", REPO, 5, ["alice"])]


def test_run_single_rejects_unaccepted_kind(config: RunConfig, client: FakeGitHubClient) -> None:
    """A pull-request-only operation never sees an issue (e.g. from an issues event)."""
    op = RecordingOperation(accepted=AcceptedType.PULL_REQUESTS)
    assert run_single(config, op, Item.from_issue(make_issue(1)), client=client) is FilterResult.REJECT
    assert op.filtered == []
    assert run_single(config, op, Item.from_pull_request(make_pr(2)), client=client) is FilterResult.ACCEPT
