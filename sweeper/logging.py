"""Root logger setup and the ``key=value`` field rendering used in log lines.

The level comes from ``--log-level``, else ``logging.level`` of the server
config (or LOGGING_LEVEL). At INFO the log carries one line per applied
operation; DEBUG adds filter decisions and paging.
"""

import logging
from typing import Any, Dict

from sweeper.config import LoggingConfig

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR")


def level_number(name: str | None) -> int:
    """Numeric level for a name in LEVEL_NAMES; anything else is INFO."""
    key = (name or "").strip().upper()
    if key not in LEVEL_NAMES:
        return logging.INFO
    return logging.getLevelNamesMapping()[key]


def format_fields(fields: Dict[str, Any]) -> str:
    """Render structured fields as ``key=value`` pairs joined by `` | ``."""
    return " | ".join(f"{key}={value}" for key, value in fields.items())


class SweeperLogging:
    """Applies a LoggingConfig, with an optional level override, to the root logger."""

    def __init__(self, config: LoggingConfig, level: str | None = None) -> None:
        self.level = level_number(level or config.level)
        self.format = config.format or LoggingConfig.model_fields["format"].default

    def setup(self) -> None:
        logging.basicConfig(level=self.level, format=self.format, force=True)
        # Connection pool chatter drowns the operation log at DEBUG
        logging.getLogger("urllib3").setLevel(max(self.level, logging.INFO))
