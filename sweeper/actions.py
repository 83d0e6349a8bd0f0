"""Actions: operations to run when a GitHub event or a cron schedule fires.

A repository configuration file is a YAML list of actions::

    - triggers:
        pull_request: [opened, synchronize]
      schedule: "0 3 * * *"
      operations:
        - type: dco-check
          filters:
            is: pr
          settings:
            unsigned-label: dco/no
"""

from typing import Any, Dict, List

import yaml
from croniter import croniter
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from sweeper.errors import ConfigError
from sweeper.filters import parse_configuration_filters
from sweeper.operations import validate_operation_config

# Event types accepted as trigger keys
GITHUB_EVENTS = (
    "commit_comment",
    "create",
    "delete",
    "deployment",
    "deployment_status",
    "fork",
    "gollum",
    "installation",
    "installation_repositories",
    "integration_installation",
    "integration_installation_repositories",
    "issue_comment",
    "issues",
    "label",
    "member",
    "membership",
    "milestone",
    "page_build",
    "public",
    "pull_request",
    "pull_request_review",
    "pull_request_review_comment",
    "push",
    "release",
    "repository",
    "status",
    "team_add",
    "watch",
)

Trigger = Dict[str, List[str]]


class OperationConfig(BaseModel):
    """One operation of an action: its registry type, global filters and own settings."""

    type: str
    filters: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)


class Action(BaseModel):
    """Operations run on every trigger match and on every schedule tick."""

    triggers: Trigger = Field(default_factory=dict)
    schedule: str = ""
    operations: List[OperationConfig] = Field(default_factory=list)

    @field_validator("triggers", mode="before")
    @classmethod
    def _single_action_as_list(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: [v] if isinstance(v, str) else v for k, v in value.items()}
        return value

    @field_validator("triggers")
    @classmethod
    def _check_events(cls, value: Trigger) -> Trigger:
        invalid = [event for event in value if event not in GITHUB_EVENTS]
        if invalid:
            raise ValueError("invalid event type " + ", ".join(repr(e) for e in invalid))
        return value

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        value = (value or "").strip()
        if value and not croniter.is_valid(value):
            raise ValueError(f"invalid cron schedule {value!r}")
        return value

    def trigger_contains(self, event: str, action: str) -> bool:
        """True if the (event type, payload action) pair triggers this action."""
        return action in self.triggers.get(event, [])


_ACTIONS_ADAPTER = TypeAdapter(List[Action])


def parse_actions(raw: Any) -> List[Action]:
    """Validate already-decoded YAML data as a list of actions."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("configuration must be a list of actions")
    try:
        return _ACTIONS_ADAPTER.validate_python(raw)
    except ValidationError as err:
        raise ConfigError(f"invalid actions: {err}") from err


def load_actions(text: str) -> List[Action]:
    """Parse a repository configuration file; an empty document has no actions."""
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ConfigError(f"cannot parse configuration: {err}") from err
    return parse_actions(raw)


def validate_actions(actions: List[Action]) -> List[str]:
    """Build every operation (filters and settings) and return all error messages."""
    errors: List[str] = []
    for index, action in enumerate(actions):
        for op_config in action.operations:
            try:
                parse_configuration_filters(op_config.filters)
                validate_operation_config(op_config)
            except ConfigError as err:
                errors.append(f"action {index}: operation {op_config.type!r}: {err}")
    return errors


def ensure_valid_actions(actions: List[Action]) -> List[Action]:
    """Return the actions unchanged, or raise ConfigError listing every problem."""
    errors = validate_actions(actions)
    if errors:
        raise ConfigError("; ".join(errors))
    return actions
