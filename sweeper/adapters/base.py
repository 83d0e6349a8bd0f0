"""Abstract GitHub client used by the runner and the operations."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field

from sweeper.models import Comment, Commit, CommitFile, Issue, Milestone, PullRequest, RepoStatus


class GitPlatformError(Exception):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitPlatformError):
    """Raised when the requested GitHub resource does not exist (404)."""

    pass


class IssueListOptions(BaseModel):
    """Query parameters for listing issues of a repository."""

    state: str = Field(default="open", description="open, closed or all")
    sort: str | None = Field(default=None, description="created, updated or comments")
    direction: str | None = Field(default=None, description="asc or desc")
    labels: List[str] | None = Field(default=None, description="Only issues bearing all these labels")
    per_page: int = Field(default=100, ge=1, le=100)

    def to_params(self, page: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {"state": self.state, "per_page": self.per_page, "page": page}
        if self.sort:
            params["sort"] = self.sort
        if self.direction:
            params["direction"] = self.direction
        if self.labels:
            params["labels"] = ",".join(self.labels)
        return params


class PullRequestListOptions(BaseModel):
    """Query parameters for listing pull requests of a repository."""

    state: str = Field(default="open", description="open, closed or all")
    base: str | None = Field(default=None, description="Only pull requests against this branch")
    sort: str | None = Field(default=None, description="created, updated, popularity or long-running")
    direction: str | None = Field(default=None, description="asc or desc")
    per_page: int = Field(default=100, ge=1, le=100)

    def to_params(self, page: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {"state": self.state, "per_page": self.per_page, "page": page}
        if self.base:
            params["base"] = self.base
        if self.sort:
            params["sort"] = self.sort
        if self.direction:
            params["direction"] = self.direction
        return params


class GitHubClient(ABC):
    """Interface to the GitHub API, one repository given as owner/name per call."""

    @abstractmethod
    def list_issues(self, repo: str, options: IssueListOptions, page: int) -> Tuple[List[Issue], int | None]:
        """Return one page of issues and the next page number (None on the last page)."""
        ...

    @abstractmethod
    def list_pull_requests(
        self,
        repo: str,
        options: PullRequestListOptions,
        page: int,
    ) -> Tuple[List[PullRequest], int | None]:
        """Return one page of pull requests and the next page number."""
        ...

    @abstractmethod
    def get_issue(self, repo: str, number: int) -> Issue:
        ...

    @abstractmethod
    def get_pull_request(self, repo: str, number: int) -> PullRequest:
        ...

    @abstractmethod
    def list_issue_comments(self, repo: str, number: int, since: datetime | None = None) -> List[Comment]:
        """All comments of an issue or pull request, oldest first."""
        ...

    @abstractmethod
    def create_comment(self, repo: str, number: int, body: str) -> Comment:
        ...

    @abstractmethod
    def delete_comment(self, repo: str, comment_id: int) -> None:
        ...

    @abstractmethod
    def add_labels(self, repo: str, number: int, labels: List[str]) -> None:
        ...

    @abstractmethod
    def remove_label(self, repo: str, number: int, label: str) -> None:
        ...

    @abstractmethod
    def add_assignees(self, repo: str, number: int, assignees: List[str]) -> None:
        ...

    @abstractmethod
    def edit_issue(
        self,
        repo: str,
        number: int,
        state: str | None = None,
        milestone: int | None = None,
    ) -> None:
        ...

    @abstractmethod
    def list_commits(self, repo: str, number: int) -> List[Commit]:
        ...

    @abstractmethod
    def list_files(self, repo: str, number: int) -> List[CommitFile]:
        ...

    @abstractmethod
    def list_statuses(self, repo: str, ref: str) -> List[RepoStatus]:
        ...

    @abstractmethod
    def list_milestones(self, repo: str) -> List[Milestone]:
        ...

    @abstractmethod
    def get_raw_file(self, repo: str, path: str, ref: str = "HEAD") -> str | None:
        """Raw file content from the repository; None when the file does not exist."""
        ...
