"""label: add labels to items whose title or body matches regular expressions."""

import argparse
import re
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field

from sweeper.adapters.base import IssueListOptions, PullRequestListOptions
from sweeper.models import Item
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.catalog.common import open_issues, open_pull_requests
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation
from sweeper.settings import MultiValuedKeys


class LabelSettings(BaseModel):
    patterns: Dict[str, Any] = Field(default_factory=dict, description="label -> regular expressions")


class LabelOperation(Operation[Tuple[str, ...]]):
    """Adds every label that has at least one matching pattern."""

    name = "label"

    def __init__(self, patterns: Dict[str, List[str]]) -> None:
        self.patterns: Dict[str, List[re.Pattern]] = {}
        for label, expressions in patterns.items():
            try:
                self.patterns[label] = [re.compile(e) for e in expressions]
            except re.error as err:
                raise ValueError(f"invalid pattern for label {label!r}: {err}") from err

    def accepts(self) -> AcceptedType:
        return AcceptedType.ALL

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, Tuple[str, ...] | None]:
        text = f"{item.title}\n{item.body}"
        labels = tuple(
            label
            for label, patterns in self.patterns.items()
            if any(p.search(text) for p in patterns)
        )
        if not labels:
            return FilterResult.REJECT, None
        return FilterResult.ACCEPT, labels

    def describe(self, ctx: Context, item: Item, payload: Tuple[str, ...]) -> str:
        return f"Adding labels {', '.join(payload)} to item #{item.number}"

    def apply(self, ctx: Context, item: Item, payload: Tuple[str, ...]) -> None:
        ctx.client.add_labels(ctx.full_name, item.number, list(payload))

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        return open_issues()

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        return open_pull_requests()


class LabelDescriptor(OperationDescriptor):
    name = "label"
    description = "Apply labels to issues and pull requests matching patterns"
    args_usage = "label:regex[,regex...] ..."

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("patterns", nargs="+", metavar="LABEL:REGEX", help="label and its patterns")

    def from_cli(self, args: argparse.Namespace) -> LabelOperation:
        patterns = MultiValuedKeys.from_items(args.patterns)
        return LabelOperation(dict(patterns.items()))

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> LabelOperation:
        parsed = LabelSettings.model_validate(settings)
        return LabelOperation(dict(MultiValuedKeys.from_config(parsed.patterns).items()))


register_operation(LabelDescriptor())
