"""Helpers shared by catalog operations."""

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sweeper.adapters.base import IssueListOptions, PullRequestListOptions
from sweeper.models import Comment, Item, RepoStatus
from sweeper.operations.base import Context

# Injected as an HTML comment into every comment the tool posts
TOOL_TOKEN = "AUTOMATED:SWEEPER"

# Pull requests failing CI for a legitimate reason carry this label
FAILING_CI_LABEL = "status/failing-ci"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def open_issues() -> IssueListOptions:
    return IssueListOptions(state="open")


def open_pull_requests() -> PullRequestListOptions:
    return PullRequestListOptions(state="open")


def item_labels(ctx: Context, item: Item) -> List[str]:
    """Labels of the item; pull requests read them from their related issue."""
    return item.related_issue(ctx.client).labels


def latest_statuses(statuses: Iterable[RepoStatus]) -> Dict[str, RepoStatus]:
    """Latest status per CI context."""
    latest: Dict[str, RepoStatus] = {}
    for status in statuses:
        current = latest.get(status.context)
        if current is None or status.created_at > current.created_at:
            latest[status.context] = status
    return latest


def has_failures(snapshot: Dict[str, RepoStatus]) -> bool:
    """True if any context is in a state other than success or pending."""
    return any(s.state not in ("success", "pending") for s in snapshot.values())


def find_automated_comments(ctx: Context, number: int, token: str) -> List[Comment]:
    """Comments of an item whose body carries the token, newest first."""
    comments = ctx.client.list_issue_comments(ctx.full_name, number)
    found = [c for c in comments if token in c.body]
    found.sort(key=lambda c: c.created_at, reverse=True)
    return found
