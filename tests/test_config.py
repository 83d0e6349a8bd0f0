"""Tests for configuration loading (YAML, env substitution, secrets)."""

from pathlib import Path

import pytest

import sweeper.config as config_module
from sweeper.config import AppConfig, RunConfig, load_config
from sweeper.errors import ConfigError

SERVER_CONFIG = """
run:
  delay: 2
  token: ${TEST_SWEEPER_TOKEN}
webhook:
  port: 9000
  secret: $TEST_WEBHOOK_SECRET
queue:
  enabled: true
  directory: /tmp/spool
repositories:
  - owner/repo
common_configuration:
  - triggers:
      pull_request: [opened]
    operations:
      - type: dco-check
"""


def test_load_config_full(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_SWEEPER_TOKEN", "ghp_secret")
    monkeypatch.setenv("TEST_WEBHOOK_SECRET", "hook-secret")
    path = tmp_path / "sweeper.yaml"
    path.write_text(SERVER_CONFIG)

    config = load_config(path)

    assert config.run.delay == 2.0
    assert config.run.token_resolved == "ghp_secret"
    assert config.webhook.port == 9000
    assert config.webhook.secret_resolved == "hook-secret"
    assert config.queue.enabled is True
    assert config.queue.directory == "/tmp/spool"
    assert config.repositories == ["owner/repo"]
    assert config.common_configuration[0].operations[0].type == "dco-check"
    assert config.repository_config_file == "sweeper.yml"


def test_missing_default_config_gives_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_config()
    assert isinstance(config, AppConfig)
    assert config.run.dry_run is False
    assert config.repositories == []


def test_explicit_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "run: [unclosed",
        "- just\n- a list\n",
        "run:\n  delay: -1\n",
        "run:\n  repository: not-a-repo\n",
        "common_configuration:\n  - schedule: whenever\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str) -> None:
    path = tmp_path / "sweeper.yaml"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_config(path)


def test_token_resolution_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Explicit token, then token file, then GITHUB_TOKEN / GITHUB_TOKEN_FILE."""
    token_file = tmp_path / "token"
    token_file.write_text("from-file\n")
    monkeypatch.setattr(config_module, "_current_env", {"GITHUB_TOKEN": "from-env"})
    assert RunConfig(token="explicit").token_resolved == "explicit"
    assert RunConfig(token_file=str(token_file)).token_resolved == "from-file"
    assert RunConfig().token_resolved == "from-env"
    assert RunConfig(token="${UNSET_VAR}").token_resolved == "from-env"


def test_split_repository() -> None:
    assert RunConfig(repository="owner/repo").split_repository() == ("owner", "repo")
    with pytest.raises(ConfigError):
        RunConfig().split_repository()
