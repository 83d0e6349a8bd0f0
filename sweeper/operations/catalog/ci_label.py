"""ci-label-audit and ci-label-clean: keep the failing-CI label consistent with statuses."""

import argparse
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from sweeper.adapters.base import PullRequestListOptions
from sweeper.models import Item
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import (
    FAILING_CI_LABEL,
    has_failures,
    item_labels,
    latest_statuses,
    open_pull_requests,
)
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation


@dataclass(frozen=True)
class CiAudit:
    has_failures: bool
    has_failing_ci_label: bool


class CiLabelAuditOperation(Operation[CiAudit]):
    """Reports pull requests whose label disagrees with their CI statuses; changes nothing."""

    name = "ci-label-audit"

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, CiAudit | None]:
        # Unmergeable pull requests (e.g. rebase needed) say nothing about CI.
        if item.pull_request.mergeable is False:
            return FilterResult.REJECT, None
        labels = item_labels(ctx, item)
        latest = latest_statuses(ctx.client.list_statuses(ctx.full_name, item.pull_request.head_sha))
        return FilterResult.ACCEPT, CiAudit(
            has_failures=has_failures(latest),
            has_failing_ci_label=FAILING_CI_LABEL in labels,
        )

    def describe(self, ctx: Context, item: Item, payload: CiAudit) -> str:
        if payload.has_failing_ci_label and not payload.has_failures:
            return f"PR#{item.number} is labeled {FAILING_CI_LABEL!r} but has no failures"
        if not payload.has_failing_ci_label and payload.has_failures:
            return f"PR#{item.number} is not labeled {FAILING_CI_LABEL!r} but has failures"
        return ""

    def apply(self, ctx: Context, item: Item, payload: CiAudit) -> None:
        return None

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class CiLabelCleanOperation(Operation[str]):
    """Removes the failing-CI label from pull requests whose CI no longer fails."""

    name = "ci-label-clean"

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, str | None]:
        if FAILING_CI_LABEL not in item_labels(ctx, item):
            return FilterResult.REJECT, None
        latest = latest_statuses(ctx.client.list_statuses(ctx.full_name, item.pull_request.head_sha))
        if has_failures(latest):
            return FilterResult.REJECT, None
        return FilterResult.ACCEPT, FAILING_CI_LABEL

    def describe(self, ctx: Context, item: Item, payload: str) -> str:
        return f"Removing label {payload!r} from pull request #{item.number}"

    def apply(self, ctx: Context, item: Item, payload: str) -> None:
        ctx.client.remove_label(ctx.full_name, item.number, payload)

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class CiLabelAuditDescriptor(OperationDescriptor):
    name = "ci-label-audit"
    description = "Audit CI failure labels"

    def from_cli(self, args: argparse.Namespace) -> CiLabelAuditOperation:
        return CiLabelAuditOperation()

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> CiLabelAuditOperation:
        return CiLabelAuditOperation()


class CiLabelCleanDescriptor(OperationDescriptor):
    name = "ci-label-clean"
    description = "Clean CI failure labels"

    def from_cli(self, args: argparse.Namespace) -> CiLabelCleanOperation:
        return CiLabelCleanOperation()

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> CiLabelCleanOperation:
        return CiLabelCleanOperation()


register_operation(CiLabelAuditDescriptor())
register_operation(CiLabelCleanDescriptor())
