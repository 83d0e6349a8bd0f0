"""In-memory GitHub client and item builders shared by the tests."""

from datetime import UTC, datetime, timedelta
from typing import Dict, List, Tuple

from sweeper.adapters.base import GitHubClient, IssueListOptions, NotFoundError, PullRequestListOptions
from sweeper.models import Comment, Commit, CommitFile, Issue, Item, Milestone, PullRequest, RepoStatus

REPO = "owner/repo"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


def make_issue(number: int = 1, **kwargs) -> Issue:
    data = {
        "title": f"Issue {number}",
        "body": "",
        "author": "octocat",
        "labels": [],
        "state": "open",
        "created_at": days_ago(10),
        "updated_at": days_ago(1),
        "repository": REPO,
    }
    data.update(kwargs)
    return Issue(number=number, **data)


def make_pr(number: int = 2, **kwargs) -> PullRequest:
    data = {
        "title": f"PR {number}",
        "body": "",
        "author": "octocat",
        "state": "open",
        "created_at": days_ago(10),
        "updated_at": days_ago(1),
        "repository": REPO,
        "head_ref": "feature",
        "head_sha": "abc123",
        "base_ref": "master",
    }
    data.update(kwargs)
    return PullRequest(number=number, **data)


def issue_item(number: int = 1, **kwargs) -> Item:
    return Item.from_issue(make_issue(number, **kwargs))


def pr_item(number: int = 2, **kwargs) -> Item:
    return Item.from_pull_request(make_pr(number, **kwargs))


class FakeGitHubClient(GitHubClient):
    """Serves pages and per-number data from dicts; records every write."""

    def __init__(self) -> None:
        self.issue_pages: List[List[Issue]] = []
        self.pr_pages: List[List[PullRequest]] = []
        self.issues: Dict[int, Issue] = {}
        self.pull_requests: Dict[int, PullRequest] = {}
        self.comments: Dict[int, List[Comment]] = {}
        self.commits: Dict[int, List[Commit]] = {}
        self.files: Dict[int, List[CommitFile]] = {}
        self.statuses: Dict[str, List[RepoStatus]] = {}
        self.milestones: List[Milestone] = []
        self.raw_files: Dict[Tuple[str, str], str] = {}
        self.labels_missing: set = set()
        self.calls: List[tuple] = []
        self._next_comment_id = 1000

    def _page(self, pages: list, page: int) -> Tuple[list, int | None]:
        if not pages:
            return [], None
        next_page = page + 1 if page < len(pages) else None
        return list(pages[page - 1]), next_page

    def list_issues(self, repo: str, options: IssueListOptions, page: int) -> Tuple[List[Issue], int | None]:
        self.calls.append(("list_issues", repo, page))
        return self._page(self.issue_pages, page)

    def list_pull_requests(
        self,
        repo: str,
        options: PullRequestListOptions,
        page: int,
    ) -> Tuple[List[PullRequest], int | None]:
        self.calls.append(("list_pull_requests", repo, page))
        return self._page(self.pr_pages, page)

    def get_issue(self, repo: str, number: int) -> Issue:
        self.calls.append(("get_issue", repo, number))
        if number not in self.issues:
            raise NotFoundError(f"404: issue {number}", status_code=404)
        return self.issues[number]

    def get_pull_request(self, repo: str, number: int) -> PullRequest:
        self.calls.append(("get_pull_request", repo, number))
        if number not in self.pull_requests:
            raise NotFoundError(f"404: pull request {number}", status_code=404)
        return self.pull_requests[number]

    def list_issue_comments(self, repo: str, number: int, since: datetime | None = None) -> List[Comment]:
        self.calls.append(("list_issue_comments", repo, number, since))
        comments = self.comments.get(number, [])
        if since is not None:
            comments = [c for c in comments if c.updated_at >= since]
        return list(comments)

    def create_comment(self, repo: str, number: int, body: str) -> Comment:
        self.calls.append(("create_comment", repo, number, body))
        self._next_comment_id += 1
        comment = Comment(id=self._next_comment_id, body=body, author="sweeper-bot", created_at=NOW)
        self.comments.setdefault(number, []).append(comment)
        return comment

    def delete_comment(self, repo: str, comment_id: int) -> None:
        self.calls.append(("delete_comment", repo, comment_id))

    def add_labels(self, repo: str, number: int, labels: List[str]) -> None:
        self.calls.append(("add_labels", repo, number, list(labels)))

    def remove_label(self, repo: str, number: int, label: str) -> None:
        self.calls.append(("remove_label", repo, number, label))
        if label in self.labels_missing:
            raise NotFoundError(f"404: label {label}", status_code=404)

    def add_assignees(self, repo: str, number: int, assignees: List[str]) -> None:
        self.calls.append(("add_assignees", repo, number, list(assignees)))

    def edit_issue(
        self,
        repo: str,
        number: int,
        state: str | None = None,
        milestone: int | None = None,
    ) -> None:
        self.calls.append(("edit_issue", repo, number, state, milestone))

    def list_commits(self, repo: str, number: int) -> List[Commit]:
        self.calls.append(("list_commits", repo, number))
        return list(self.commits.get(number, []))

    def list_files(self, repo: str, number: int) -> List[CommitFile]:
        self.calls.append(("list_files", repo, number))
        return list(self.files.get(number, []))

    def list_statuses(self, repo: str, ref: str) -> List[RepoStatus]:
        self.calls.append(("list_statuses", repo, ref))
        return list(self.statuses.get(ref, []))

    def list_milestones(self, repo: str) -> List[Milestone]:
        self.calls.append(("list_milestones", repo))
        return list(self.milestones)

    def get_raw_file(self, repo: str, path: str, ref: str = "HEAD") -> str | None:
        self.calls.append(("get_raw_file", repo, path, ref))
        return self.raw_files.get((path, ref))

    def writes(self) -> List[tuple]:
        """Calls that change something on GitHub."""
        names = {
            "create_comment",
            "delete_comment",
            "add_labels",
            "remove_label",
            "add_assignees",
            "edit_issue",
        }
        return [c for c in self.calls if c[0] in names]
