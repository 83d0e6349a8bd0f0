"""version-label and version-milestone: version bookkeeping on issues and pull requests."""

import argparse
import logging
import re
from typing import Any, Dict, Tuple

from pydantic import BaseModel, Field

from sweeper.adapters.base import IssueListOptions
from sweeper.errors import OperationError
from sweeper.models import Item, Milestone
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import open_issues
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation

LOG = logging.getLogger("sweeper.operations.version")

SERVER_VERSION_RE = re.compile(
    r"(?:Server:?)\s+(?:Docker Engine - Community\s+)?(?:Engine:\s+)?(?:Version:\s+)(\d+\.\d+\.\d+)(-\w+)?"
)
SUPPORTED_SUFFIXES = ("cs", "rc", "ce", "ee")
VERSION_FILE = "VERSION"


def label_from_version(version: str, suffix: str) -> str:
    """Map ``X.Y.Z`` and its suffix to a ``version/...`` label."""
    if suffix == "dev":
        return "version/master"
    if suffix == "" or suffix.startswith(SUPPORTED_SUFFIXES):
        return "version/" + version[: version.rindex(".")]
    return "version/unsupported"


def extract_version_label(body: str) -> str | None:
    match = SERVER_VERSION_RE.search(body or "")
    if not match:
        return None
    return label_from_version(match.group(1), (match.group(2) or "").lstrip("-"))


class VersionLabelOperation(Operation[str]):
    """Labels issues with the server version quoted in their body."""

    name = "version-label"

    def accepts(self) -> AcceptedType:
        return AcceptedType.ISSUES

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, str | None]:
        label = extract_version_label(item.body)
        if label is None:
            return FilterResult.REJECT, None
        return FilterResult.ACCEPT, label

    def describe(self, ctx: Context, item: Item, payload: str) -> str:
        return f"Adding label {payload!r} to issue #{item.number}"

    def apply(self, ctx: Context, item: Item, payload: str) -> None:
        ctx.client.add_labels(ctx.full_name, item.number, [payload])

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        return open_issues()


class VersionMilestoneSettings(BaseModel):
    branch: str = Field(default="master", description="Only pull requests merged into this branch")


class VersionMilestoneOperation(Operation[Milestone]):
    """Attaches merged pull requests to the milestone named after the VERSION file.

    Never listed in batch: it would attach every historical pull request to
    the upcoming milestone.
    """

    name = "version-milestone"

    def __init__(self, branch: str = "master") -> None:
        self.branch = branch

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def _version(self, ctx: Context) -> str:
        content = ctx.client.get_raw_file(ctx.full_name, VERSION_FILE, ref=self.branch)
        if content is None:
            raise OperationError(f"{ctx.full_name} has no {VERSION_FILE} file on {self.branch}")
        return content.strip().split("-", 1)[0]

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, Milestone | None]:
        pr = item.pull_request
        if pr.merged is False:
            LOG.debug("Rejecting unmerged pull request | repo=%s | pr=%s", ctx.full_name, pr.number)
            return FilterResult.REJECT, None
        if pr.milestone is not None:
            LOG.debug(
                "Rejecting pull request with milestone | repo=%s | pr=%s | milestone=%s",
                ctx.full_name,
                pr.number,
                pr.milestone.title,
            )
            return FilterResult.REJECT, None
        if pr.base_ref != self.branch:
            LOG.debug("Rejecting pull request against %s | repo=%s | pr=%s", pr.base_ref, ctx.full_name, pr.number)
            return FilterResult.REJECT, None

        version = self._version(ctx)
        for milestone in ctx.client.list_milestones(ctx.full_name):
            if milestone.title == version:
                return FilterResult.ACCEPT, milestone
        LOG.debug("No milestone for version | repo=%s | version=%s", ctx.full_name, version)
        return FilterResult.REJECT, None

    def describe(self, ctx: Context, item: Item, payload: Milestone) -> str:
        return f"Adding pull request #{item.number} to milestone {payload.number} ({payload.title!r})"

    def apply(self, ctx: Context, item: Item, payload: Milestone) -> None:
        ctx.client.edit_issue(ctx.full_name, item.number, milestone=payload.number)


class VersionLabelDescriptor(OperationDescriptor):
    name = "version-label"
    description = "Apply version labels to issues"

    def from_cli(self, args: argparse.Namespace) -> VersionLabelOperation:
        return VersionLabelOperation()

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> VersionLabelOperation:
        return VersionLabelOperation()


class VersionMilestoneDescriptor(OperationDescriptor):
    name = "version-milestone"
    description = "Attach merged pull requests to the upcoming version's milestone"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--branch", default="master", help="release branch (default: %(default)s)")

    def from_cli(self, args: argparse.Namespace) -> VersionMilestoneOperation:
        return VersionMilestoneOperation(branch=args.branch)

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> VersionMilestoneOperation:
        return VersionMilestoneOperation(branch=VersionMilestoneSettings.model_validate(settings).branch)


register_operation(VersionLabelDescriptor())
register_operation(VersionMilestoneDescriptor())
