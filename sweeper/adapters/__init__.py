"""GitHub transport."""

from sweeper.adapters.base import (
    GitHubClient,
    GitPlatformError,
    IssueListOptions,
    NotFoundError,
    PullRequestListOptions,
)
from sweeper.adapters.github import GitHubAdapter, make_client

__all__ = [
    "GitHubAdapter",
    "GitHubClient",
    "GitPlatformError",
    "IssueListOptions",
    "NotFoundError",
    "PullRequestListOptions",
    "make_client",
]
