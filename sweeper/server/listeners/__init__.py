"""Event sources for the daemon."""

from sweeper.server.listeners.base import EventHandler, Listener
from sweeper.server.listeners.spool import SpoolListener, enqueue
from sweeper.server.listeners.webhook import WebhookListener

__all__ = ["EventHandler", "Listener", "SpoolListener", "WebhookListener", "enqueue"]
