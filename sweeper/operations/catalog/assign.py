"""random-assign: assign unassigned items to a random user."""

import argparse
import random
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field

from sweeper.adapters.base import IssueListOptions, PullRequestListOptions
from sweeper.models import Item
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import open_issues, open_pull_requests
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation


class RandomAssignSettings(BaseModel):
    users: List[str] = Field(min_length=1)


class RandomAssignOperation(Operation[str]):
    name = "random-assign"

    def __init__(self, users: List[str], rng: random.Random | None = None) -> None:
        if not users:
            raise ValueError("random-assign requires at least one user")
        self.users = list(users)
        self._rng = rng or random.Random()

    def accepts(self) -> AcceptedType:
        return AcceptedType.ALL

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, str | None]:
        if item.assignees:
            return FilterResult.REJECT, None
        # Authors are never assigned their own items
        candidates = [u for u in self.users if u != item.author]
        if not candidates:
            return FilterResult.REJECT, None
        return FilterResult.ACCEPT, self._rng.choice(candidates)

    def describe(self, ctx: Context, item: Item, payload: str) -> str:
        return f"Assigning {payload} to item #{item.number}"

    def apply(self, ctx: Context, item: Item, payload: str) -> None:
        ctx.client.add_assignees(ctx.full_name, item.number, [payload])

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        return open_issues()

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class RandomAssignDescriptor(OperationDescriptor):
    name = "random-assign"
    description = "Assign items to a random user from the list"
    args_usage = "user [user...]"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("users", nargs="+", metavar="USER", help="candidate assignee")

    def from_cli(self, args: argparse.Namespace) -> RandomAssignOperation:
        return RandomAssignOperation(users=args.users)

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> RandomAssignOperation:
        return RandomAssignOperation(users=RandomAssignSettings.model_validate(settings).users)


register_operation(RandomAssignDescriptor())
