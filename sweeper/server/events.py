"""Decoding of GitHub event payloads into items."""

import json
import logging
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, ValidationError

from sweeper.adapters.github import issue_from_api, pr_from_api
from sweeper.models import Item

LOG = logging.getLogger("sweeper.server.events")

ISSUE_EVENTS = ("issues", "issue_comment")
PULL_REQUEST_EVENTS = ("pull_request", "pull_request_review", "pull_request_review_comment")


class EventDecodeError(ValueError):
    """Event body is not a valid GitHub payload."""

    pass


class EventPayload(BaseModel):
    """The parts of a GitHub webhook payload the dispatcher reads."""

    model_config = ConfigDict(extra="ignore")

    action: str = ""
    repository: Dict[str, Any] | None = None
    issue: Dict[str, Any] | None = None
    pull_request: Dict[str, Any] | None = None

    @property
    def repository_name(self) -> str:
        return (self.repository or {}).get("full_name", "")


class Event:
    """Decoded event: type, payload action and the items it concerns."""

    def __init__(self, event_type: str, action: str, repository: str, items: List[Item]) -> None:
        self.type = event_type
        self.action = action
        self.repository = repository
        self.items = items

    def __repr__(self) -> str:
        return f"Event({self.type}/{self.action} {self.repository} items={len(self.items)})"


def parse_body(body: bytes | str | Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(body, dict):
        return body
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise EventDecodeError(f"invalid event JSON: {err}") from err
    if not isinstance(data, dict):
        raise EventDecodeError("event payload must be a JSON object")
    return data


def decode_event(event_type: str, body: bytes | str | Dict[str, Any]) -> Event:
    """Decode a payload; unknown event types give an event without items."""
    data = parse_body(body)
    try:
        payload = EventPayload.model_validate(data)
    except ValidationError as err:
        raise EventDecodeError(f"invalid {event_type} payload: {err}") from err

    repo = payload.repository_name
    items: List[Item] = []
    try:
        if event_type in ISSUE_EVENTS and payload.issue:
            items.append(Item.from_issue(issue_from_api(payload.issue, repo)))
        elif event_type in PULL_REQUEST_EVENTS and payload.pull_request:
            items.append(Item.from_pull_request(pr_from_api(payload.pull_request, repo)))
    except (KeyError, TypeError, ValueError) as err:
        raise EventDecodeError(f"invalid {event_type} payload: {err}") from err

    if not items:
        LOG.debug("No items in event | event=%s | action=%s | repo=%s", event_type, payload.action, repo)
    return Event(event_type, payload.action, repo, items)
