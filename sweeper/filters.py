"""Item filters: predicates over issues and pull requests.

A filter is built from a type and a string value (``make_filter``). Each
strategy implements ``apply_issue`` and/or ``apply_pull_request``; a
strategy without the method for the item's kind lets the item through.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List

from sweeper.errors import InvalidFilterValue, UnknownFilterType
from sweeper.models import Issue, Item, PullRequest
from sweeper.settings import VALUES_SEPARATOR, ExtDuration

LOG = logging.getLogger("sweeper.filters")

_TRUE = {"1", "t", "true", "yes", "y", "on"}
_FALSE = {"0", "f", "false", "no", "n", "off"}

_COMMENTS_RE = re.compile(r"^([<=>])\s*(\d+)$")
_CLI_FILTER_RE = re.compile(r"^(~?[a-z]+)([:=<>].*)$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Filter:
    """Base filter; subclasses add apply_issue / apply_pull_request."""

    def apply(self, item: Item) -> bool:
        if item.is_pull_request():
            method = getattr(self, "apply_pull_request", None)
            return True if method is None else method(item.pull_request)
        method = getattr(self, "apply_issue", None)
        return True if method is None else method(item.issue)


class AgeFilter(Filter):
    """Items created more (``>``, default) or less (``<``) than a duration ago."""

    def __init__(
        self,
        age: ExtDuration,
        older: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.age = age
        self.older = older
        self._clock = clock

    def _check(self, created_at: datetime) -> bool:
        elapsed = self._clock() - created_at
        if self.older:
            return elapsed > self.age.to_timedelta()
        return elapsed < self.age.to_timedelta()

    def apply_issue(self, issue: Issue) -> bool:
        return self._check(issue.created_at)

    def apply_pull_request(self, pull_request: PullRequest) -> bool:
        return self._check(pull_request.created_at)

    def __repr__(self) -> str:
        return f"AgeFilter({'>' if self.older else '<'}{self.age})"


class AssignedFilter(Filter):
    """Issues with (true) or without (false) an assignee."""

    def __init__(self, is_assigned: bool) -> None:
        self.is_assigned = is_assigned

    def apply_issue(self, issue: Issue) -> bool:
        return self.is_assigned == bool(issue.assignees)

    def __repr__(self) -> str:
        return f"AssignedFilter({self.is_assigned})"


class CommentsFilter(Filter):
    """Items whose comment count compares to a number with ``<``, ``=`` or ``>``."""

    _OPERATORS = {
        "<": lambda n, count: n < count,
        "=": lambda n, count: n == count,
        ">": lambda n, count: n > count,
    }

    def __init__(self, operator: str, count: int) -> None:
        self.operator = operator
        self.count = count

    def _check(self, comments: int) -> bool:
        return self._OPERATORS[self.operator](comments, self.count)

    def apply_issue(self, issue: Issue) -> bool:
        return self._check(issue.comments)

    def apply_pull_request(self, pull_request: PullRequest) -> bool:
        return self._check(pull_request.comments)

    def __repr__(self) -> str:
        return f"CommentsFilter({self.operator}{self.count})"


class IsFilter(Filter):
    """Restricts items to pull requests (``pr``) or to real issues (``issue``)."""

    def __init__(self, pull_request_only: bool) -> None:
        self.pull_request_only = pull_request_only

    def apply_issue(self, issue: Issue) -> bool:
        # The issues API also lists pull requests: those never count as issues.
        return not self.pull_request_only and not issue.is_pull_request

    def apply_pull_request(self, pull_request: PullRequest) -> bool:
        return self.pull_request_only

    def __repr__(self) -> str:
        return f"IsFilter(pull_request_only={self.pull_request_only})"


class WithLabelsFilter(Filter):
    """Issues bearing all of the labels."""

    def __init__(self, labels: List[str]) -> None:
        self.labels = labels

    def apply_issue(self, issue: Issue) -> bool:
        return all(label in issue.labels for label in self.labels)

    def __repr__(self) -> str:
        return f"WithLabelsFilter({VALUES_SEPARATOR.join(self.labels)})"


class WithoutLabelsFilter(Filter):
    """Issues bearing none of the labels."""

    def __init__(self, labels: List[str]) -> None:
        self.labels = labels

    def apply_issue(self, issue: Issue) -> bool:
        return not any(label in issue.labels for label in self.labels)

    def __repr__(self) -> str:
        return f"WithoutLabelsFilter({VALUES_SEPARATOR.join(self.labels)})"


def _make_age_filter(value: str) -> Filter:
    older = True
    text = value.strip()
    if text[:1] in ("<", ">"):
        older = text[0] == ">"
        text = text[1:]
    try:
        return AgeFilter(ExtDuration.parse(text), older=older)
    except ValueError as err:
        raise InvalidFilterValue(f'invalid value {value!r} for "age" filter') from err


def _make_assigned_filter(value: str) -> Filter:
    text = value.strip().lower()
    if text in _TRUE:
        return AssignedFilter(True)
    if text in _FALSE:
        return AssignedFilter(False)
    raise InvalidFilterValue(f'invalid value {value!r} for "assigned" filter')


def _make_comments_filter(value: str) -> Filter:
    match = _COMMENTS_RE.match(value.strip())
    if not match:
        raise InvalidFilterValue(f'invalid value {value!r} for "comments" filter')
    return CommentsFilter(match.group(1), int(match.group(2)))


def _make_is_filter(value: str) -> Filter:
    if value == "pr":
        return IsFilter(pull_request_only=True)
    if value == "issue":
        return IsFilter(pull_request_only=False)
    raise InvalidFilterValue(f'invalid value {value!r} for "is" filter')


def _split_labels(value: str) -> List[str]:
    return [label.strip() for label in value.split(VALUES_SEPARATOR) if label.strip()]


FILTER_TYPES: Dict[str, Callable[[str], Filter]] = {
    "age": _make_age_filter,
    "assigned": _make_assigned_filter,
    "comments": _make_comments_filter,
    "is": _make_is_filter,
    "labels": lambda value: WithLabelsFilter(_split_labels(value)),
    "~labels": lambda value: WithoutLabelsFilter(_split_labels(value)),
}


def make_filter(filter_type: str, value: str) -> Filter:
    """Build a filter from its type and value.

    Raises UnknownFilterType or InvalidFilterValue.
    """
    constructor = FILTER_TYPES.get(filter_type)
    if constructor is None:
        raise UnknownFilterType(f"unknown filter type {filter_type!r}")
    return constructor(value)


class Filters(list):
    """Ordered filters combined with logical AND; an empty set accepts all."""

    def apply(self, item: Item) -> bool:
        for f in self:
            if not f.apply(item):
                LOG.debug("Item filtered out | item=%r | filter=%r", item, f)
                return False
        return True


def _filter_value(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, list):
        for v in raw:
            if not isinstance(v, str):
                raise InvalidFilterValue(f"non-string {v!r} in filter value")
        return VALUES_SEPARATOR.join(raw)
    raise InvalidFilterValue(f"invalid data type {type(raw).__name__} for filter value {raw!r}")


def parse_configuration_filters(values: Dict[str, Any] | None) -> Filters:
    """Build filters from a configuration mapping ``{type: value-or-list}``."""
    filters = Filters()
    for filter_type, raw in (values or {}).items():
        filters.append(make_filter(str(filter_type), _filter_value(raw)))
    return filters


def parse_cli_filter(expr: str) -> Filter:
    """Build a filter from a command-line expression.

    Accepted forms: ``labels=a,b``, ``labels:a,b``, ``is=pr``, ``comments>5``,
    ``comments=0``, ``age>6m``, ``age:2w``.
    """
    match = _CLI_FILTER_RE.match(expr.strip())
    if not match:
        raise InvalidFilterValue(f"invalid filter expression {expr!r} (expected `type=value`)")
    filter_type, value = match.group(1), match.group(2)
    if value.startswith(":"):
        value = value[1:]
    elif value.startswith("=") and filter_type != "comments":
        value = value[1:]
    return make_filter(filter_type, value)


def parse_cli_filters(exprs: Iterable[str] | None) -> Filters:
    return Filters(parse_cli_filter(expr) for expr in (exprs or []))


def filter_includes_issues(filters: Iterable[Filter]) -> bool:
    """False when an ``is=pr`` filter excludes issues."""
    return not any(isinstance(f, IsFilter) and f.pull_request_only for f in filters)


def filter_includes_pull_requests(filters: Iterable[Filter]) -> bool:
    """False when an ``is=issue`` filter excludes pull requests."""
    return not any(isinstance(f, IsFilter) and not f.pull_request_only for f in filters)
