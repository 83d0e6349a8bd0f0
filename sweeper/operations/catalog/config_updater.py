"""config-updater: reload a repository's configuration once a change to it is merged."""

import argparse
import logging
from typing import Any, Callable, Dict, Tuple

from pydantic import BaseModel, Field

from sweeper.errors import OperationError
from sweeper.models import Item
from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.registry import OperationDescriptor, OperationHooks, register_operation

LOG = logging.getLogger("sweeper.operations.config_updater")

DEFAULT_CONFIG_FILE = "sweeper.yml"


class ConfigUpdaterSettings(BaseModel):
    file: str = Field(default=DEFAULT_CONFIG_FILE, description="Configuration file at the repository root")


class ConfigUpdaterOperation(Operation[str]):
    """Accepts merged pull requests touching the configuration file.

    The payload is the repository whose configuration is refreshed.
    """

    name = "config-updater"

    def __init__(self, refresh: Callable[[str], None] | None, config_file: str = DEFAULT_CONFIG_FILE) -> None:
        self._refresh = refresh
        self.config_file = config_file

    def accepts(self) -> AcceptedType:
        return AcceptedType.PULL_REQUESTS

    def filter(self, ctx: Context, item: Item) -> Tuple[FilterResult, str | None]:
        if not item.pull_request.merged:
            LOG.debug("Rejecting unmerged pull request | repo=%s | pr=%s", ctx.full_name, item.number)
            return FilterResult.REJECT, None
        files = ctx.client.list_files(ctx.full_name, item.number)
        if any(f.filename == self.config_file for f in files):
            return FilterResult.ACCEPT, item.repository or ctx.full_name
        return FilterResult.REJECT, None

    def describe(self, ctx: Context, item: Item, payload: str) -> str:
        return f"Updating configuration of {payload}"

    def apply(self, ctx: Context, item: Item, payload: str) -> None:
        if self._refresh is None:
            raise OperationError("configuration refresh is only available in the daemon")
        self._refresh(payload)


class ConfigUpdaterDescriptor(OperationDescriptor):
    name = "config-updater"
    description = "Reload the repository configuration when a change to it is merged"
    cli_available = False

    def from_cli(self, args: argparse.Namespace) -> ConfigUpdaterOperation:
        raise OperationError("the config-updater operation cannot be created from the command line")

    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> ConfigUpdaterOperation:
        parsed = ConfigUpdaterSettings.model_validate(settings)
        return ConfigUpdaterOperation(hooks.refresh_repository, config_file=parsed.file)


register_operation(ConfigUpdaterDescriptor())
