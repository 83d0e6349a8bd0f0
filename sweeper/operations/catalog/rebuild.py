"""rebuild: request a CI rebuild of pull requests whose configurations failed."""

import argparse
import logging
import os
from typing import Any, Callable, Dict, List, Tuple

import requests
from pydantic import BaseModel, Field

from sweeper.adapters.base import PullRequestListOptions
from sweeper.errors import OperationError
from sweeper.models import Item, PullRequest
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import (
    FAILING_CI_LABEL,
    item_labels,
    latest_statuses,
    open_pull_requests,
)
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation

LOG = logging.getLogger("sweeper.operations.rebuild")

DEFAULT_REBUILD_URL = "https://leeroy.dockerproject.org/build/retry"

Builder = Callable[[str, PullRequest, str], None]


class RebuildSettings(BaseModel):
    configurations: List[str] = Field(default_factory=list, description="CI contexts eligible for rebuild")
    url: str = Field(default=DEFAULT_REBUILD_URL, description="Rebuild endpoint")


def request_rebuild(url: str, pr: PullRequest, context: str) -> None:
    """POST a rebuild request; credentials come from REBUILD_USERNAME / REBUILD_PASSWORD."""
    auth = (os.environ.get("REBUILD_USERNAME", ""), os.environ.get("REBUILD_PASSWORD", ""))
    resp = requests.post(
        url,
        json={"number": pr.number, "repo": pr.repository, "context": context},
        auth=auth,
        timeout=30,
    )
    if resp.status_code != 204:
        raise OperationError(
            f"requesting {url} for PR {pr.number} of {pr.repository} returned status code "
            f"{resp.status_code}: make sure the repository allows builds"
        )


class RebuildOperation(Operation[Tuple[str, ...]]):
    name = "rebuild"

    def __init__(
        self,
        configurations: List[str],
        url: str = DEFAULT_REBUILD_URL,
        builder: Builder = request_rebuild,
    ) -> None:
        self.configurations = list(configurations)
        self.url = url
        self._builder = builder

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, Tuple[str, ...] | None]:
        if FAILING_CI_LABEL in item_labels(ctx, item):
            return FilterResult.REJECT, None
        statuses = ctx.client.list_statuses(ctx.full_name, item.pull_request.head_sha)
        latest = latest_statuses(statuses)
        contexts = tuple(
            name
            for name in self.configurations
            if name in latest and latest[name].state in ("error", "failure")
        )
        if not contexts:
            return FilterResult.REJECT, None
        return FilterResult.ACCEPT, contexts

    def describe(self, ctx: Context, item: Item, payload: Tuple[str, ...]) -> str:
        return f"Rebuilding pull request #{item.number} for {', '.join(payload)}"

    def apply(self, ctx: Context, item: Item, payload: Tuple[str, ...]) -> None:
        for context in payload:
            try:
                self._builder(self.url, item.pull_request, context)
            except requests.RequestException as err:
                raise OperationError(f"error rebuilding pull request {item.number}: {err}") from err
            LOG.debug("Rebuild requested | repo=%s | pr=%s | context=%s", ctx.full_name, item.number, context)

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class RebuildDescriptor(OperationDescriptor):
    name = "rebuild"
    description = "Rebuild failed pull requests"
    args_usage = "configuration [configuration...]"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("configurations", nargs="+", metavar="CONFIGURATION", help="CI context to rebuild")
        parser.add_argument("--url", default=DEFAULT_REBUILD_URL, help="rebuild endpoint (default: %(default)s)")

    def from_cli(self, args: argparse.Namespace) -> RebuildOperation:
        return RebuildOperation(configurations=args.configurations, url=args.url)

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> RebuildOperation:
        parsed = RebuildSettings.model_validate(settings)
        return RebuildOperation(configurations=parsed.configurations, url=parsed.url)


register_operation(RebuildDescriptor())
