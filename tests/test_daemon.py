"""Tests for the daemon wiring (listeners from config, start/stop)."""

import threading
from pathlib import Path
from unittest.mock import MagicMock

from sweeper.config import AppConfig, QueueConfig, WebhookConfig
from sweeper.server.daemon import build_listeners, run_server
from sweeper.server.listeners import SpoolListener, WebhookListener


def test_build_listeners_from_config(tmp_path: Path) -> None:
    config = AppConfig(queue=QueueConfig(enabled=True, directory=str(tmp_path)))
    listeners = build_listeners(config)
    assert [type(listener) for listener in listeners] == [WebhookListener, SpoolListener]

    config = AppConfig(webhook=WebhookConfig(enabled=False))
    assert build_listeners(config) == []


def test_run_server_starts_and_stops_everything(tmp_path: Path) -> None:
    config = AppConfig(
        # Port 0 binds any free port; bypasses the 1-65535 validation
        webhook=WebhookConfig.model_construct(host="127.0.0.1", port=0, secret="", enabled=True),
        queue=QueueConfig(enabled=True, directory=str(tmp_path), poll_interval=0.01),
        repositories=["owner/repo"],
    )
    dispatcher = MagicMock()
    stop_event = threading.Event()
    stop_event.set()

    run_server(config, dispatcher=dispatcher, stop_event=stop_event)

    dispatcher.fetch_repositories_configs.assert_called_once_with()
    dispatcher.stop.assert_called_once_with()
    assert (tmp_path / "pending").is_dir()
