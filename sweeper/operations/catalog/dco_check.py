"""dco-check: label and explain pull requests with unsigned commits."""

import argparse
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

from sweeper.adapters.base import NotFoundError, PullRequestListOptions
from sweeper.models import Item, PullRequest
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import TOOL_TOKEN, find_automated_comments, open_pull_requests
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation

LOG = logging.getLogger("sweeper.operations.dco_check")

DCO_REGEX = re.compile(
    r"(?m)(Docker-DCO-1.1-)?Signed-off-by: ([^<]+) <([^<>@]+@[^<>]+)>( \(github: ([a-zA-Z0-9][a-zA-Z0-9-]+)\))?"
)
DCO_COMMENT_TOKEN = f"{TOOL_TOKEN}:DCO-EXPLANATION"
DEFAULT_UNSIGNED_LABEL = "dco/no"


class DcoCheckSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unsigned_label: str = Field(default=DEFAULT_UNSIGNED_LABEL, alias="unsigned-label")


@dataclass(frozen=True)
class DcoStatus:
    signed: bool


def format_dco_comment(pr: PullRequest) -> str:
    multiple = pr.commits > 1
    lines = [
        f"<!-- {DCO_COMMENT_TOKEN} -->",
        "Please sign your commits following these rules:",
        "https://developercertificate.org/",
        "The easiest way to do this is to amend the last commit:",
        "~~~console",
        f'$ git clone -b "{pr.head_ref}" {pr.head_clone_url} somewhere',
        "$ cd somewhere",
    ]
    if multiple:
        lines += [
            f"$ git rebase -i HEAD~{pr.commits}",
            "editor opens",
            "change each 'pick' to 'edit'",
            "save the file and quit",
        ]
    lines.append("$ git commit --amend -s --no-edit")
    if multiple:
        lines.append("$ git rebase --continue # and repeat the amend for each commit")
    lines += [
        "$ git push -f",
        "~~~",
        "",
        "Amending updates the existing PR. You **DO NOT** need to open a new one.",
        "",
    ]
    return "\n".join(lines)


class DcoCheckOperation(Operation[DcoStatus]):
    """Every open pull request is accepted; apply converges label and comment."""

    name = "dco-check"

    def __init__(self, unsigned_label: str = DEFAULT_UNSIGNED_LABEL) -> None:
        self.unsigned_label = unsigned_label

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, DcoStatus | None]:
        commits = ctx.client.list_commits(ctx.full_name, item.number)
        signed = all(DCO_REGEX.search(c.message) for c in commits)
        return FilterResult.ACCEPT, DcoStatus(signed=signed)

    def describe(self, ctx: Context, item: Item, payload: DcoStatus) -> str:
        if payload.signed:
            return (
                f"Pull request #{item.number} is signed: label {self.unsigned_label!r} "
                "and explanation comment will be removed"
            )
        return (
            f"Pull request #{item.number} is unsigned: label {self.unsigned_label!r} "
            "and explanation comment will be added"
        )

    def apply(self, ctx: Context, item: Item, payload: DcoStatus) -> None:
        if payload.signed:
            self._apply_signed(ctx, item)
        else:
            self._apply_unsigned(ctx, item)

    def _apply_signed(self, ctx: Context, item: Item) -> None:
        try:
            ctx.client.remove_label(ctx.full_name, item.number, self.unsigned_label)
        except NotFoundError:
            LOG.debug("Label not present | repo=%s | pr=%s | label=%s", ctx.full_name, item.number, self.unsigned_label)
        for comment in find_automated_comments(ctx, item.number, DCO_COMMENT_TOKEN):
            ctx.client.delete_comment(ctx.full_name, comment.id)

    def _apply_unsigned(self, ctx: Context, item: Item) -> None:
        ctx.client.add_labels(ctx.full_name, item.number, [self.unsigned_label])
        if find_automated_comments(ctx, item.number, DCO_COMMENT_TOKEN):
            return
        ctx.client.create_comment(ctx.full_name, item.number, format_dco_comment(item.pull_request))

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class DcoCheckDescriptor(OperationDescriptor):
    name = "dco-check"
    description = "Check DCO sign-off on pull requests"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--unsigned-label",
            default=DEFAULT_UNSIGNED_LABEL,
            help="label to add to unsigned pull requests (default: %(default)s)",
        )

    def from_cli(self, args: argparse.Namespace) -> DcoCheckOperation:
        return DcoCheckOperation(unsigned_label=args.unsigned_label)

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> DcoCheckOperation:
        parsed = DcoCheckSettings.model_validate(settings)
        return DcoCheckOperation(unsigned_label=parsed.unsigned_label)


register_operation(DcoCheckDescriptor())
