"""Tests for repository configuration actions."""

import pytest

from sweeper.actions import Action, ensure_valid_actions, load_actions, parse_actions, validate_actions
from sweeper.errors import ConfigError

REPOSITORY_CONFIG = """
- triggers:
    pull_request: [opened, synchronize]
  operations:
    - type: dco-check
      settings:
        unsigned-label: dco/no
- triggers:
    issues: opened
  schedule: "0 3 * * *"
  operations:
    - type: label
      filters:
        is: issue
      settings:
        patterns:
          kind/bug: [crash]
"""


def test_load_actions() -> None:
    actions = load_actions(REPOSITORY_CONFIG)
    assert len(actions) == 2
    assert actions[0].triggers == {"pull_request": ["opened", "synchronize"]}
    assert actions[1].triggers == {"issues": ["opened"]}
    assert actions[1].schedule == "0 3 * * *"
    assert actions[1].operations[0].filters == {"is": "issue"}
    assert validate_actions(actions) == []


def test_trigger_contains_is_strict() -> None:
    """A trigger matches on the exact event type and payload action."""
    action = Action(triggers={"pull_request": ["opened"]})
    assert action.trigger_contains("pull_request", "opened") is True
    assert action.trigger_contains("pull_request", "closed") is False
    assert action.trigger_contains("issues", "opened") is False
    assert Action(triggers={"pull_request": []}).trigger_contains("pull_request", "opened") is False


def test_empty_document_has_no_actions() -> None:
    assert load_actions("") == []
    assert load_actions("# nothing yet\n") == []


@pytest.mark.parametrize(
    "text",
    [
        "triggers: {}",  # not a list
        "- triggers:\n    pull_requests: [opened]",  # unknown event
        "- schedule: every day",  # invalid cron
        "- operations: [{settings: {}}]",  # missing type
        "- [unclosed",  # bad YAML
    ],
)
def test_invalid_documents(text: str) -> None:
    with pytest.raises(ConfigError):
        load_actions(text)


def test_validate_actions_collects_every_error() -> None:
    actions = parse_actions(
        [
            {"operations": [{"type": "nope"}]},
            {"operations": [{"type": "label", "filters": {"color": "red"}}]},
            {"operations": [{"type": "prune", "settings": {"action": "archive"}}]},
        ]
    )
    errors = validate_actions(actions)
    assert len(errors) == 3
    assert errors[0].startswith("action 0: operation 'nope'")
    with pytest.raises(ConfigError) as exc_info:
        ensure_valid_actions(actions)
    assert "action 2" in str(exc_info.value)
