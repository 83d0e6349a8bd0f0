"""Operation contract.

An operation decides per item whether it applies (``filter``), explains
what it would do (``describe``) and does it (``apply``). The payload
returned by ``filter`` is handed unchanged to ``describe`` and ``apply``.
"""

import enum
from abc import ABC, abstractmethod
from typing import Generic, Tuple, TypeVar

from sweeper.adapters.base import GitHubClient, IssueListOptions, PullRequestListOptions
from sweeper.models import Item

T = TypeVar("T")


class FilterResult(enum.Enum):
    """Outcome of an operation's filter for one item."""

    ACCEPT = "accept"
    REJECT = "reject"
    # Rejected, and no later item of the listing can be accepted either.
    # Only sound on listings sorted so that the first miss implies all miss.
    TERMINAL = "terminal"


class AcceptedType(enum.IntFlag):
    """Item kinds an operation can apply to."""

    ISSUES = 1
    PULL_REQUESTS = 2
    ALL = ISSUES | PULL_REQUESTS


class Context:
    """Client and target repository handed to every operation call."""

    def __init__(self, client: GitHubClient, username: str, repository: str) -> None:
        self.client = client
        self.username = username
        self.repository = repository

    @property
    def full_name(self) -> str:
        return f"{self.username}/{self.repository}"

    def __repr__(self) -> str:
        return f"Context({self.full_name})"


class Operation(ABC, Generic[T]):
    """Action over GitHub items; T is the payload computed by filter."""

    #: Registry name, set by each catalog class
    name: str = ""

    @abstractmethod
    def accepts(self) -> AcceptedType:
        """Item kinds the operation applies to."""
        ...

    @abstractmethod
    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, T | None]:
        """Decide whether to apply to the item; the payload is only used on ACCEPT."""
        ...

    @abstractmethod
    def describe(self, ctx: Context, item: Item, payload: T) -> str:
        """Human-readable description of apply; empty string means nothing to log."""
        ...

    @abstractmethod
    def apply(self, ctx: Context, item: Item, payload: T) -> None:
        ...

    def issue_list_options(self, ctx: Context) -> IssueListOptions | None:
        """Options for listing issues; None forbids batch runs over issues."""
        return None

    def pull_request_list_options(self, ctx: Context) -> PullRequestListOptions | None:
        """Options for listing pull requests; None forbids batch runs over pull requests."""
        return None
