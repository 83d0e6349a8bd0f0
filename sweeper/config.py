"""Configuration loading from YAML and environment.

Secrets (tokens, webhook secret) are taken from environment variables or
from files (Docker secrets). Never put real tokens in config files committed
to the repo.
"""

import os
from pathlib import Path
from typing import Any, Tuple

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sweeper.actions import Action
from sweeper.adapters.github import DEFAULT_API_URL, DEFAULT_RAW_URL
from sweeper.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("sweeper.yaml")
REPOSITORY_CONFIG_FILE = "sweeper.yml"


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


# Injected by load_config so properties can read env/file
_current_env: dict[str, str] = dict(os.environ)


def _unresolved(value: str | None) -> bool:
    return not value or value.startswith("${")


class RunConfig(BaseSettings):
    """Execution settings every run receives; immutable once built."""

    model_config = SettingsConfigDict(env_prefix="SWEEPER_", extra="ignore", frozen=True)

    dry_run: bool = Field(default=False, description="Describe actions without applying them")
    delay: float = Field(default=0.0, ge=0, description="Seconds to wait between listing pages")
    repository: str = Field(default="", description="Target repository as owner/name")
    token: str | None = Field(default=None, description="GitHub token; prefer env or secret file")
    token_file: str | None = Field(default=None, description="Path to a file holding the GitHub token")
    api_url: str = Field(default=DEFAULT_API_URL, description="GitHub API base URL")
    raw_url: str = Field(default=DEFAULT_RAW_URL, description="Raw content base URL")

    @field_validator("repository")
    @classmethod
    def _check_repository(cls, value: str) -> str:
        if value and value.count("/") != 1:
            raise ValueError(f"repository must be owner/name, got {value!r}")
        return value

    def split_repository(self) -> Tuple[str, str]:
        """Return (owner, name); raises ConfigError when no repository is set."""
        if not self.repository:
            raise ConfigError("no repository configured (use --repository or SWEEPER_REPOSITORY)")
        owner, name = self.repository.split("/", 1)
        return owner, name

    @property
    def token_resolved(self) -> str | None:
        """Resolve GitHub token from config, token file, env or Docker secret file."""
        if not _unresolved(self.token):
            return self.token
        if self.token_file:
            return Path(self.token_file).read_text().strip()
        return _read_secret("GITHUB_TOKEN", "GITHUB_TOKEN_FILE")


class WebhookConfig(BaseSettings):
    """Webhook server settings."""

    model_config = SettingsConfigDict(env_prefix="WEBHOOK_", extra="ignore")

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")
    secret: str = Field(default="", description="Secret for webhook signature verification")
    enabled: bool = Field(default=True, description="Enable webhook server")

    @property
    def secret_resolved(self) -> str:
        """Resolve webhook secret from config, env or Docker secret file."""
        if not _unresolved(self.secret):
            return self.secret
        return _read_secret("WEBHOOK_SECRET", "WEBHOOK_SECRET_FILE") or ""


class QueueConfig(BaseSettings):
    """Spool directory queue settings."""

    model_config = SettingsConfigDict(env_prefix="QUEUE_", extra="ignore")

    enabled: bool = Field(default=False, description="Consume events from the spool directory")
    directory: str = Field(default=".sweeper/queue", description="Spool root (pending/done/failed)")
    poll_interval: float = Field(default=2.0, gt=0, description="Seconds between spool scans")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    run: RunConfig = Field(default_factory=RunConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    repositories: list[str] = Field(
        default_factory=list, description="Repositories whose configuration file is loaded at startup"
    )
    common_configuration: list[Action] = Field(
        default_factory=list, description="Actions applied to every repository"
    )
    repository_config_file: str = Field(
        default=REPOSITORY_CONFIG_FILE, description="Per-repository configuration file name"
    )


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        # Simple $VAR
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    A missing file yields the defaults (plus SWEEPER_*, WEBHOOK_*, QUEUE_*
    and LOGGING_* env). Invalid YAML or values raise ConfigError.

    Secrets: GITHUB_TOKEN or GITHUB_TOKEN_FILE, WEBHOOK_SECRET or WEBHOOK_SECRET_FILE.
    """
    global _current_env
    _current_env = dict(os.environ)

    path = config_path or DEFAULT_CONFIG_PATH
    if not path.is_file():
        if config_path is not None:
            raise ConfigError(f"config file not found: {path}")
        return AppConfig()

    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as err:
        raise ConfigError(f"cannot parse {path}: {err}") from err
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    raw = _substitute_env(raw)

    try:
        return AppConfig(
            run=RunConfig(**(raw.get("run") or {})),
            webhook=WebhookConfig(**(raw.get("webhook") or {})),
            queue=QueueConfig(**(raw.get("queue") or {})),
            logging=LoggingConfig(**(raw.get("logging") or {})),
            repositories=raw.get("repositories") or [],
            common_configuration=raw.get("common_configuration") or [],
            repository_config_file=raw.get("repository_config_file") or REPOSITORY_CONFIG_FILE,
        )
    except ValidationError as err:
        raise ConfigError(f"invalid configuration in {path}: {err}") from err
