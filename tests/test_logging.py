"""Tests for sweeper.logging (SweeperLogging, level/format from config)."""

import logging

from sweeper.config import LoggingConfig
from sweeper.logging import LEVEL_NAMES, SweeperLogging, format_fields, level_number


class TestLevelNumber:
    """level_number maps level names to logging constants."""

    def test_known_levels(self) -> None:
        assert [level_number(name) for name in LEVEL_NAMES] == [
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
        ]

    def test_case_and_whitespace_normalized(self) -> None:
        assert level_number(" debug ") == logging.DEBUG

    def test_unknown_level_returns_info(self) -> None:
        """Unknown or missing level name falls back to INFO."""
        assert level_number("TRACE") == logging.INFO
        assert level_number("CRITICAL") == logging.INFO
        assert level_number("") == logging.INFO
        assert level_number(None) == logging.INFO


class TestSweeperLogging:
    """SweeperLogging applies LoggingConfig to the root logger."""

    def test_setup_sets_root_level_from_config(self) -> None:
        SweeperLogging(LoggingConfig(level="WARNING", format="%(message)s")).setup()
        assert logging.root.level == logging.WARNING
        assert logging.root.handlers[0].formatter._fmt == "%(message)s"

    def test_explicit_level_overrides_config(self) -> None:
        """The --log-level flag wins over the configured level."""
        SweeperLogging(LoggingConfig(level="ERROR"), level="DEBUG").setup()
        assert logging.root.level == logging.DEBUG

    def test_urllib3_kept_at_info_or_above(self) -> None:
        SweeperLogging(LoggingConfig(level="DEBUG")).setup()
        assert logging.getLogger("urllib3").level == logging.INFO
        SweeperLogging(LoggingConfig(level="ERROR")).setup()
        assert logging.getLogger("urllib3").level == logging.ERROR

    def test_empty_format_uses_default(self) -> None:
        SweeperLogging(LoggingConfig(format="")).setup()
        assert logging.root.handlers[0].formatter._fmt == LoggingConfig().format


def test_format_fields() -> None:
    assert format_fields({"repository": "owner/repo", "number": 3}) == "repository=owner/repo | number=3"
    assert format_fields({}) == ""
