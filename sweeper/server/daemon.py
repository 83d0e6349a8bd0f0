"""Sweeper daemon: loads repository configurations, runs their schedules and
dispatches events from the webhook server and the spool directory."""

import logging
import threading
from typing import List

from sweeper.config import AppConfig
from sweeper.server.dispatcher import Dispatcher
from sweeper.server.listeners import Listener, SpoolListener, WebhookListener

LOG = logging.getLogger("sweeper.server.daemon")


def build_listeners(config: AppConfig) -> List[Listener]:
    """Listeners enabled by the config; the webhook listener, if any, comes first."""
    listeners: List[Listener] = []
    if config.webhook.enabled:
        listeners.append(WebhookListener(config.webhook.host, config.webhook.port, config.webhook.secret_resolved))
    if config.queue.enabled:
        listeners.append(SpoolListener(config.queue.directory, config.queue.poll_interval))
    return listeners


def run_server(config: AppConfig, dispatcher: Dispatcher | None = None, stop_event: threading.Event | None = None) -> None:
    """Run until interrupted (or until ``stop_event`` is set)."""
    dispatcher = dispatcher or Dispatcher(config)
    stop_event = stop_event or threading.Event()
    listeners = build_listeners(config)
    if not listeners:
        LOG.warning("Webhook and spool disabled in config; only schedules will run.")
    LOG.info(
        "Sweeper daemon started | repositories=%s | webhook=%s | spool=%s | dry_run=%s",
        len(config.repositories),
        config.webhook.enabled,
        config.queue.enabled,
        config.run.dry_run,
    )

    dispatcher.fetch_repositories_configs()
    for listener in listeners:
        listener.start(dispatcher)
    try:
        while not stop_event.wait(1.0):
            pass
    finally:
        LOG.info("Sweeper daemon stopping")
        for listener in listeners:
            listener.stop()
        dispatcher.stop()
