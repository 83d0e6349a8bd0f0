"""Listener contract: a source of GitHub events feeding the dispatcher."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Protocol


class EventHandler(Protocol):
    """Anything that consumes ``(event type, payload)`` pairs, e.g. the Dispatcher."""

    def handle_event(self, event_type: str, body: bytes | str | Dict[str, Any]) -> int:
        ...


class Listener(ABC):
    """Delivers events to a handler until stopped."""

    @abstractmethod
    def start(self, handler: EventHandler) -> None:
        """Begin delivering events to ``handler``."""

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering events; safe to call more than once."""
