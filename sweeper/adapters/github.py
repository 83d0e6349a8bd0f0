"""GitHub API adapter."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from sweeper.adapters.base import (
    GitHubClient,
    GitPlatformError,
    IssueListOptions,
    NotFoundError,
    PullRequestListOptions,
)
from sweeper.models import Comment, Commit, CommitFile, Issue, Milestone, PullRequest, RepoStatus

if TYPE_CHECKING:
    from sweeper.config import RunConfig

LOG = logging.getLogger("sweeper.adapters.github")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_RAW_URL = "https://raw.githubusercontent.com"


def _parse_iso(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _logins(users: Any) -> List[str]:
    return [u["login"] for u in (users or []) if isinstance(u, dict) and "login" in u]


def _milestone_from_api(data: Dict[str, Any] | None) -> Milestone | None:
    if not data:
        return None
    return Milestone(number=data["number"], title=data.get("title") or "")


def issue_from_api(data: Dict[str, Any], repo: str = "") -> Issue:
    user = data.get("user") or {}
    labels = [lb["name"] for lb in (data.get("labels") or []) if isinstance(lb, dict) and "name" in lb]
    return Issue(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        author=user.get("login", ""),
        labels=labels,
        state=data.get("state", "open"),
        created_at=_parse_iso(data["created_at"]),
        updated_at=_parse_iso(data.get("updated_at") or data["created_at"]),
        repository=repo,
        assignees=_logins(data.get("assignees")),
        comments=data.get("comments") or 0,
        milestone=_milestone_from_api(data.get("milestone")),
        is_pull_request="pull_request" in data,
    )


def pr_from_api(data: Dict[str, Any], repo: str = "") -> PullRequest:
    user = data.get("user") or {}
    head = data.get("head") or {}
    base = data.get("base") or {}
    head_repo = head.get("repo") or {}
    labels = [lb["name"] for lb in (data.get("labels") or []) if isinstance(lb, dict) and "name" in lb]
    return PullRequest(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        author=user.get("login", ""),
        state=data.get("state", "open"),
        created_at=_parse_iso(data["created_at"]),
        updated_at=_parse_iso(data.get("updated_at") or data["created_at"]),
        repository=repo,
        head_ref=head.get("ref", ""),
        head_sha=head.get("sha", ""),
        head_clone_url=head_repo.get("clone_url", ""),
        base_ref=base.get("ref", ""),
        labels=labels,
        assignees=_logins(data.get("assignees")),
        comments=data.get("comments") or 0,
        commits=data.get("commits") or 0,
        milestone=_milestone_from_api(data.get("milestone")),
        merged=data.get("merged"),
        mergeable=data.get("mergeable"),
    )


def _comment_from_api(data: Dict[str, Any]) -> Comment:
    user = data.get("user") or {}
    created = _parse_iso(data["created_at"])
    updated = _parse_iso(data.get("updated_at") or data["created_at"])
    return Comment(
        id=data["id"],
        body=data.get("body") or "",
        author=user.get("login", ""),
        created_at=created,
        updated_at=updated,
    )


def _status_from_api(data: Dict[str, Any]) -> RepoStatus:
    return RepoStatus(
        context=data.get("context", ""),
        state=data.get("state", ""),
        created_at=_parse_iso(data["created_at"]),
    )


def _next_page(resp: requests.Response) -> int | None:
    """Page number of the rel="next" Link header, None on the last page."""
    link = resp.links.get("next")
    if not link:
        return None
    values = parse_qs(urlparse(link.get("url", "")).query).get("page")
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


class GitHubAdapter(GitHubClient):
    """GitHub REST API implementation."""

    def __init__(
        self,
        token: str | None,
        api_url: str = DEFAULT_API_URL,
        raw_url: str = DEFAULT_RAW_URL,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._raw_url = raw_url.rstrip("/")
        self._session = requests.Session()
        if token:
            self._session.headers["Authorization"] = f"token {token}"
        self._session.headers["Accept"] = "application/vnd.github.v3+json"

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json: Any = None,
    ) -> requests.Response:
        url = f"{self._api_url}{path}" if path.startswith("/") else f"{self._api_url}/{path}"
        resp = self._session.request(method, url, params=params, json=json, timeout=30)
        if resp.status_code >= 400:
            msg = resp.text or resp.reason or str(resp.status_code)
            try:
                msg = resp.json().get("message", msg)
            except ValueError:
                pass
            if resp.status_code == 404:
                raise NotFoundError(f"404: {msg}", status_code=404)
            raise GitPlatformError(f"{resp.status_code}: {msg}", status_code=resp.status_code)
        return resp

    def _get_all(self, path: str, params: Dict[str, Any] | None = None) -> List[Dict[str, Any]]:
        """Follow rel="next" links and return every element of a listing."""
        query = dict(params or {})
        query.setdefault("per_page", 100)
        page = 1
        result: List[Dict[str, Any]] = []
        while True:
            query["page"] = page
            resp = self._request("GET", path, params=query)
            result.extend(resp.json() or [])
            next_page = _next_page(resp)
            if next_page is None:
                return result
            page = next_page

    def list_issues(self, repo: str, options: IssueListOptions, page: int) -> Tuple[List[Issue], int | None]:
        resp = self._request("GET", f"/repos/{repo}/issues", params=options.to_params(page))
        issues = [issue_from_api(d, repo) for d in (resp.json() or [])]
        return issues, _next_page(resp)

    def list_pull_requests(
        self,
        repo: str,
        options: PullRequestListOptions,
        page: int,
    ) -> Tuple[List[PullRequest], int | None]:
        resp = self._request("GET", f"/repos/{repo}/pulls", params=options.to_params(page))
        prs = [pr_from_api(d, repo) for d in (resp.json() or [])]
        return prs, _next_page(resp)

    def get_issue(self, repo: str, number: int) -> Issue:
        resp = self._request("GET", f"/repos/{repo}/issues/{number}")
        return issue_from_api(resp.json(), repo)

    def get_pull_request(self, repo: str, number: int) -> PullRequest:
        resp = self._request("GET", f"/repos/{repo}/pulls/{number}")
        return pr_from_api(resp.json(), repo)

    def list_issue_comments(self, repo: str, number: int, since: datetime | None = None) -> List[Comment]:
        params: Dict[str, Any] = {}
        if since is not None:
            params["since"] = since.isoformat()
        data = self._get_all(f"/repos/{repo}/issues/{number}/comments", params)
        return [_comment_from_api(d) for d in data]

    def create_comment(self, repo: str, number: int, body: str) -> Comment:
        resp = self._request("POST", f"/repos/{repo}/issues/{number}/comments", json={"body": body})
        return _comment_from_api(resp.json())

    def delete_comment(self, repo: str, comment_id: int) -> None:
        self._request("DELETE", f"/repos/{repo}/issues/comments/{comment_id}")

    def add_labels(self, repo: str, number: int, labels: List[str]) -> None:
        self._request("POST", f"/repos/{repo}/issues/{number}/labels", json={"labels": labels})

    def remove_label(self, repo: str, number: int, label: str) -> None:
        self._request("DELETE", f"/repos/{repo}/issues/{number}/labels/{label}")

    def add_assignees(self, repo: str, number: int, assignees: List[str]) -> None:
        self._request("POST", f"/repos/{repo}/issues/{number}/assignees", json={"assignees": assignees})

    def edit_issue(
        self,
        repo: str,
        number: int,
        state: str | None = None,
        milestone: int | None = None,
    ) -> None:
        payload: Dict[str, Any] = {}
        if state is not None:
            payload["state"] = state
        if milestone is not None:
            payload["milestone"] = milestone
        if not payload:
            return
        self._request("PATCH", f"/repos/{repo}/issues/{number}", json=payload)

    def list_commits(self, repo: str, number: int) -> List[Commit]:
        data = self._get_all(f"/repos/{repo}/pulls/{number}/commits")
        return [
            Commit(sha=d.get("sha", ""), message=(d.get("commit") or {}).get("message") or "")
            for d in data
        ]

    def list_files(self, repo: str, number: int) -> List[CommitFile]:
        data = self._get_all(f"/repos/{repo}/pulls/{number}/files")
        return [CommitFile(filename=d.get("filename", "")) for d in data]

    def list_statuses(self, repo: str, ref: str) -> List[RepoStatus]:
        data = self._get_all(f"/repos/{repo}/commits/{ref}/statuses")
        return [_status_from_api(d) for d in data]

    def list_milestones(self, repo: str) -> List[Milestone]:
        data = self._get_all(f"/repos/{repo}/milestones", {"state": "open"})
        return [Milestone(number=d["number"], title=d.get("title") or "") for d in data]

    def get_raw_file(self, repo: str, path: str, ref: str = "HEAD") -> str | None:
        url = f"{self._raw_url}/{repo}/{ref}/{path.lstrip('/')}"
        resp = self._session.request("GET", url, timeout=30)
        if resp.status_code == 404:
            LOG.debug("Raw file not found | repo=%s | path=%s", repo, path)
            return None
        if resp.status_code >= 400:
            raise GitPlatformError(
                f"{resp.status_code}: {resp.text or resp.reason}",
                status_code=resp.status_code,
            )
        return resp.text


def make_client(config: "RunConfig") -> GitHubAdapter:
    """Build the GitHub adapter from the execution config."""
    return GitHubAdapter(
        token=config.token_resolved,
        api_url=config.api_url,
        raw_url=config.raw_url,
    )
