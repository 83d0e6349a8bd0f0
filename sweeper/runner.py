"""Runs an operation on one item or on every item of a repository."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Tuple

from sweeper.adapters.base import GitHubClient, GitPlatformError
from sweeper.adapters.github import make_client
from sweeper.config import RunConfig
from sweeper.errors import UnsupportedBatchOperation
from sweeper.filters import Filters, filter_includes_issues, filter_includes_pull_requests, parse_configuration_filters
from sweeper.logging import format_fields
from sweeper.models import Item
from sweeper.operations import AcceptedType, Context, FilterResult, Operation, OperationHooks, operation_from_config

if TYPE_CHECKING:
    from sweeper.actions import OperationConfig

LOG = logging.getLogger("sweeper.runner")


def make_context(config: RunConfig, client: GitHubClient | None = None) -> Context:
    username, repository = config.split_repository()
    return Context(client=client or make_client(config), username=username, repository=repository)


class Lister(ABC):
    """Produces one page of items for an operation."""

    kind: str = ""

    @abstractmethod
    def list_items(self, ctx: Context, op: Operation, page: int) -> Tuple[List[Item], int | None]:
        """Return the page's items and the next page number (None on the last page)."""
        ...


class IssueLister(Lister):
    kind = "issues"

    def list_items(self, ctx: Context, op: Operation, page: int) -> Tuple[List[Item], int | None]:
        options = op.issue_list_options(ctx)
        if options is None:
            raise UnsupportedBatchOperation(f"operation {op.name!r} doesn't provide list options for issues")
        try:
            issues, next_page = ctx.client.list_issues(ctx.full_name, options, page)
        except GitPlatformError as err:
            raise GitPlatformError(
                f"failed to list issues for repository {ctx.full_name!r}: {err}",
                status_code=err.status_code,
            ) from err
        return [Item.from_issue(i) for i in issues], next_page


class PullRequestLister(Lister):
    kind = "pull requests"

    def list_items(self, ctx: Context, op: Operation, page: int) -> Tuple[List[Item], int | None]:
        options = op.pull_request_list_options(ctx)
        if options is None:
            raise UnsupportedBatchOperation(f"operation {op.name!r} doesn't provide list options for pull requests")
        try:
            prs, next_page = ctx.client.list_pull_requests(ctx.full_name, options, page)
        except GitPlatformError as err:
            raise GitPlatformError(
                f"failed to list pull requests for repository {ctx.full_name!r}: {err}",
                status_code=err.status_code,
            ) from err
        return [Item.from_pull_request(pr) for pr in prs], next_page


def _run_item(config: RunConfig, ctx: Context, op: Operation, item: Item, filters: Filters) -> FilterResult:
    if not filters.apply(item):
        return FilterResult.REJECT
    kind = AcceptedType.PULL_REQUESTS if item.is_pull_request() else AcceptedType.ISSUES
    if not op.accepts() & kind:
        LOG.debug("Operation does not accept item kind | op=%s | item=%r", op.name, item)
        return FilterResult.REJECT

    result, payload = op.filter(ctx, item)
    LOG.debug("Operation filter | op=%s | item=%r | result=%s", op.name, item, result.value)
    if result is not FilterResult.ACCEPT:
        return result

    description = op.describe(ctx, item, payload)
    if description:
        fields = {
            "repository": config.repository,
            "number": item.number,
            "type": item.type,
            "dry_run": config.dry_run,
        }
        LOG.info("%s | %s", description, format_fields(fields), extra=fields)
    if not config.dry_run:
        op.apply(ctx, item, payload)
    return result


def run_single(
    config: RunConfig,
    op: Operation,
    item: Item,
    filters: Filters | None = None,
    client: GitHubClient | None = None,
) -> FilterResult:
    """Run the operation on one item.

    Global filters come first: an item they reject, or an item of a kind
    the operation does not accept, never reaches the operation. On ACCEPT
    the description is logged and, unless dry-run, the operation is applied
    with the payload its filter returned.
    """
    ctx = make_context(config, client)
    return _run_item(config, ctx, op, item, filters or Filters())


def run_on_every_item(
    config: RunConfig,
    op: Operation,
    lister: Lister,
    filters: Filters | None = None,
    client: GitHubClient | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    """Run the operation on every listed item, page after page.

    TERMINAL from the operation ends the whole run without error; any error
    aborts it. ``delay`` seconds are waited between pages. ``stop_event``
    cancels the run at the next page boundary or during the wait.
    """
    ctx = make_context(config, client)
    filters = filters or Filters()
    page: int | None = 1
    while page is not None:
        if stop_event is not None and stop_event.is_set():
            LOG.info("Run cancelled | repo=%s | op=%s | page=%s", ctx.full_name, op.name, page)
            return
        items, next_page = lister.list_items(ctx, op, page)
        LOG.debug("Listed page | repo=%s | kind=%s | page=%s | items=%s", ctx.full_name, lister.kind, page, len(items))
        for item in items:
            if _run_item(config, ctx, op, item, filters) is FilterResult.TERMINAL:
                LOG.debug("Terminal result | repo=%s | op=%s | item=%r", ctx.full_name, op.name, item)
                return
        page = next_page
        if page is not None and config.delay > 0:
            if stop_event is not None:
                if stop_event.wait(config.delay):
                    LOG.info("Run cancelled | repo=%s | op=%s | page=%s", ctx.full_name, op.name, page)
                    return
            else:
                time.sleep(config.delay)


class OperationRunner:
    """An operation bound to its execution config and global filters."""

    def __init__(
        self,
        config: RunConfig,
        operation: Operation,
        filters: Filters | None = None,
        client: GitHubClient | None = None,
    ) -> None:
        self.config = config
        self.operation = operation
        self.filters = filters or Filters()
        self.client = client

    @classmethod
    def from_config(
        cls,
        config: RunConfig,
        op_config: "OperationConfig",
        hooks: OperationHooks | None = None,
        client: GitHubClient | None = None,
    ) -> "OperationRunner":
        filters = parse_configuration_filters(op_config.filters)
        operation = operation_from_config(op_config, hooks)
        return cls(config, operation, filters, client)

    def handle(self, item: Item) -> FilterResult:
        return run_single(self.config, self.operation, item, self.filters, self.client)

    def handle_stock(self, stop_event: threading.Event | None = None) -> None:
        """Run over all issues, then all pull requests, as accepted by operation and filters."""
        accepted = self.operation.accepts()
        if filter_includes_issues(self.filters) and accepted & AcceptedType.ISSUES:
            run_on_every_item(self.config, self.operation, IssueLister(), self.filters, self.client, stop_event)
        if filter_includes_pull_requests(self.filters) and accepted & AcceptedType.PULL_REQUESTS:
            run_on_every_item(self.config, self.operation, PullRequestLister(), self.filters, self.client, stop_event)

    def __repr__(self) -> str:
        return f"OperationRunner({self.operation.name}, filters={list(self.filters)!r})"
