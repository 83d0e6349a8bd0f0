"""prune: ping, warn about or close issues without recent activity.

Issues are listed by last update, oldest first: the first issue with recent
activity ends the run (TERMINAL). Comments posted by the tool itself carry
TOOL_TOKEN and do not count as activity.

``close`` only closes issues warned (``warn`` action) at least a grace period
ago and left unanswered since; ``force-close`` closes without warning.
"""

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sweeper.adapters.base import IssueListOptions
from sweeper.models import Comment, Item
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import TOOL_TOKEN, utcnow
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation
from sweeper.settings import ExtDuration

LOG = logging.getLogger("sweeper.operations.prune")

ACTIONS = ("ping", "warn", "close", "force-close")

PING_TEMPLATE = """<!-- {token}:{action}:{quantity}{unit} -->
@{author} It has been detected that this issue has not received any activity in over {threshold}. \
Can you please let us know if it is still relevant:

- For a bug: do you still experience the issue with the latest version?
- For a feature request: was your request appropriately answered in a later version?

Thank you!"""

WARN_TEMPLATE = """{ping}
Thank you very much for your help! The issue will be **automatically closed in {grace_period}** \
unless it is commented on.
"""


class PruneSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["ping", "warn", "close", "force-close"] = "ping"
    grace_period: str = Field(default="2w", alias="grace-period")
    threshold: str = "6m"

    @field_validator("grace_period", "threshold")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        ExtDuration.parse(value)
        return value


@dataclass(frozen=True)
class PruneDecision:
    last_activity: datetime


class PruneOperation(Operation[PruneDecision]):
    name = "prune"

    def __init__(
        self,
        action: str = "ping",
        grace_period: ExtDuration | None = None,
        threshold: ExtDuration | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if action not in ACTIONS:
            raise ValueError(f"invalid action {action!r}")
        self.action = action
        self.grace_period = grace_period or ExtDuration(2, "w")
        self.threshold = threshold or ExtDuration(6, "m")
        self._clock = clock

    def accepts(self) -> AcceptedType:
        return AcceptedType.ISSUES

    def _last_warning(self, comments: list[Comment]) -> Comment | None:
        marker = f"{TOOL_TOKEN}:warn:"
        warnings = [c for c in comments if marker in c.body]
        return max(warnings, key=lambda c: c.created_at) if warnings else None

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, PruneDecision | None]:
        issue = item.issue
        now = self._clock()
        since = now - self.threshold.to_timedelta() - self.grace_period.to_timedelta() - timedelta(days=1)
        comments = ctx.client.list_issue_comments(ctx.full_name, item.number, since=since)
        human = [c for c in comments if TOOL_TOKEN not in c.body]

        if self.action == "close":
            return self._filter_close(ctx, item, comments, human, now)

        last_activity = human[-1].updated_at if human else issue.updated_at
        if last_activity + self.threshold.to_timedelta() >= now:
            return FilterResult.TERMINAL, None
        return FilterResult.ACCEPT, PruneDecision(last_activity=last_activity)

    def _filter_close(
        self,
        ctx: Context,
        item: Item,
        comments: list[Comment],
        human: list[Comment],
        now: datetime,
    ) -> Tuple[FilterResult, PruneDecision | None]:
        # A warning bumps updated_at, so the listing order is by warning time here
        if item.issue.updated_at + self.grace_period.to_timedelta() > now:
            return FilterResult.TERMINAL, None
        warning = self._last_warning(comments)
        if warning is None or warning.created_at + self.grace_period.to_timedelta() > now:
            LOG.debug("No expired warning | repo=%s | issue=%s", ctx.full_name, item.number)
            return FilterResult.REJECT, None
        answered = [c for c in human if c.updated_at > warning.created_at]
        if answered:
            LOG.debug("Warning answered | repo=%s | issue=%s", ctx.full_name, item.number)
            return FilterResult.REJECT, None
        last_activity = human[-1].updated_at if human else warning.created_at
        return FilterResult.ACCEPT, PruneDecision(last_activity=last_activity)

    def describe(self, ctx: Context, item: Item, payload: PruneDecision) -> str:
        return (
            f"Execute {self.action} action on issue #{item.number} "
            f"(last commented on {payload.last_activity.isoformat()})"
        )

    def _ping_comment(self, item: Item) -> str:
        return PING_TEMPLATE.format(
            token=TOOL_TOKEN,
            action=self.action,
            quantity=self.threshold.quantity,
            unit=self.threshold.unit,
            author=item.author,
            threshold=self.threshold,
        )

    def apply(self, ctx: Context, item: Item, payload: PruneDecision) -> None:
        if self.action in ("close", "force-close"):
            ctx.client.edit_issue(ctx.full_name, item.number, state="closed")
        elif self.action == "ping":
            ctx.client.create_comment(ctx.full_name, item.number, self._ping_comment(item))
        else:
            body = WARN_TEMPLATE.format(ping=self._ping_comment(item), grace_period=self.grace_period)
            ctx.client.create_comment(ctx.full_name, item.number, body)

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        return IssueListOptions(state="open", sort="updated", direction="asc")


class PruneDescriptor(OperationDescriptor):
    name = "prune"
    description = "Prune outdated issues"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--action", choices=ACTIONS, default="ping", help="action to take for outdated issues")
        parser.add_argument("--grace-period", default="2w", help="grace period before closing (default: %(default)s)")
        parser.add_argument(
            "--threshold",
            default="6m",
            help='inactivity threshold in days, weeks, months or years, e.g. "4d", "3w", "2m", "1y"',
        )

    def _make(self, settings: PruneSettings) -> PruneOperation:
        return PruneOperation(
            action=settings.action,
            grace_period=ExtDuration.parse(settings.grace_period),
            threshold=ExtDuration.parse(settings.threshold),
        )

    def from_cli(self, args: argparse.Namespace) -> PruneOperation:
        return self._make(
            PruneSettings(action=args.action, grace_period=args.grace_period, threshold=args.threshold)
        )

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> PruneOperation:
        return self._make(PruneSettings.model_validate(settings))


register_operation(PruneDescriptor())
