"""Data models for issues, pull requests and the values operations read."""

from datetime import datetime
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from sweeper.adapters.base import GitHubClient


class Milestone:
    """Repository milestone."""

    def __init__(self, number: int, title: str) -> None:
        self.number = number
        self.title = title


class Comment:
    """Comment on an issue or pull request (issues API)."""

    def __init__(
        self,
        id: int,
        body: str,
        author: str,
        created_at: datetime,
        updated_at: datetime | None = None,
    ) -> None:
        self.id = id
        self.body = body or ""
        self.author = author
        self.created_at = created_at
        self.updated_at = updated_at or created_at


class Commit:
    """Commit of a pull request."""

    def __init__(self, sha: str, message: str) -> None:
        self.sha = sha
        self.message = message or ""


class CommitFile:
    """File touched by a pull request."""

    def __init__(self, filename: str) -> None:
        self.filename = filename


class RepoStatus:
    """Commit status reported by a CI context."""

    def __init__(self, context: str, state: str, created_at: datetime) -> None:
        self.context = context
        self.state = state
        self.created_at = created_at


class Issue:
    """GitHub issue.

    The issues API also returns pull requests; those carry
    is_pull_request=True.
    """

    def __init__(
        self,
        number: int,
        title: str,
        body: str,
        author: str,
        labels: List[str],
        state: str,
        created_at: datetime,
        updated_at: datetime,
        repository: str = "",
        assignees: List[str] | None = None,
        comments: int = 0,
        milestone: Milestone | None = None,
        is_pull_request: bool = False,
    ) -> None:
        self.number = number
        self.title = title
        self.body = body or ""
        self.author = author
        self.labels = labels or []
        self.state = state
        self.created_at = created_at
        self.updated_at = updated_at
        self.repository = repository
        self.assignees = assignees or []
        self.comments = comments
        self.milestone = milestone
        self.is_pull_request = is_pull_request


class PullRequest:
    """GitHub pull request.

    Labels from the pulls API are informational only; operations read
    labels from the related issue (see Item.related_issue).
    """

    def __init__(
        self,
        number: int,
        title: str,
        body: str,
        author: str,
        state: str,
        created_at: datetime,
        updated_at: datetime,
        repository: str = "",
        head_ref: str = "",
        head_sha: str = "",
        head_clone_url: str = "",
        base_ref: str = "",
        labels: List[str] | None = None,
        assignees: List[str] | None = None,
        comments: int = 0,
        commits: int = 0,
        milestone: Milestone | None = None,
        merged: bool | None = None,
        mergeable: bool | None = None,
    ) -> None:
        self.number = number
        self.title = title
        self.body = body or ""
        self.author = author
        self.state = state
        self.created_at = created_at
        self.updated_at = updated_at
        self.repository = repository
        self.head_ref = head_ref
        self.head_sha = head_sha
        self.head_clone_url = head_clone_url
        self.base_ref = base_ref
        self.labels = labels or []
        self.assignees = assignees or []
        self.comments = comments
        self.commits = commits
        self.milestone = milestone
        self.merged = merged
        self.mergeable = mergeable


class Item:
    """Either an issue or a pull request, handled uniformly by operations.

    Exactly one variant is set. For pull requests the related issue (the
    only source of labels) is fetched on demand and cached on the item.
    """

    ISSUE = "issue"
    PULL_REQUEST = "pull_request"

    def __init__(self, issue: Issue | None = None, pull_request: PullRequest | None = None) -> None:
        if (issue is None) == (pull_request is None):
            raise ValueError("Item requires exactly one of issue or pull_request")
        self.issue = issue
        self.pull_request = pull_request

    @classmethod
    def from_issue(cls, issue: Issue) -> "Item":
        return cls(issue=issue)

    @classmethod
    def from_pull_request(cls, pull_request: PullRequest) -> "Item":
        return cls(pull_request=pull_request)

    def is_issue(self) -> bool:
        return self.pull_request is None

    def is_pull_request(self) -> bool:
        return self.pull_request is not None

    def _populated(self) -> Issue | PullRequest:
        if self.pull_request is not None:
            return self.pull_request
        if self.issue is not None:
            return self.issue
        raise RuntimeError("Item has neither an issue nor a pull request")

    @property
    def type(self) -> str:
        return self.PULL_REQUEST if self.is_pull_request() else self.ISSUE

    @property
    def number(self) -> int:
        return self._populated().number

    @property
    def repository(self) -> str:
        return self._populated().repository

    @property
    def title(self) -> str:
        return self._populated().title

    @property
    def body(self) -> str:
        return self._populated().body

    @property
    def author(self) -> str:
        return self._populated().author

    @property
    def assignees(self) -> List[str]:
        return self._populated().assignees

    @property
    def created_at(self) -> datetime:
        return self._populated().created_at

    def related_issue(self, client: "GitHubClient") -> Issue:
        """Return the issue for this item, fetching it once for pull requests."""
        if self.issue is not None:
            return self.issue
        pr = self._populated()
        self.issue = client.get_issue(pr.repository, pr.number)
        return self.issue

    def __repr__(self) -> str:
        return f"Item({self.type} {self.repository}#{self.number})"
