"""Spool directory listener: events dropped as JSON files by another process.

Layout under the spool root::

    pending/   envelopes waiting to be handled, processed in name order
    done/      envelopes handled successfully
    failed/    envelopes that could not be read or whose handling raised

An envelope is ``{"event": "<github event type>", "payload": {...}}``.
"""

import json
import logging
import threading
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ValidationError

from sweeper.server.listeners.base import EventHandler, Listener

LOG = logging.getLogger("sweeper.server.spool")

PENDING = "pending"
DONE = "done"
FAILED = "failed"


class SpoolEnvelope(BaseModel):
    event: str
    payload: Dict[str, Any]


def _pending_dir(root: Path) -> Path:
    return Path(root) / PENDING


def _done_dir(root: Path) -> Path:
    return Path(root) / DONE


def _failed_dir(root: Path) -> Path:
    return Path(root) / FAILED


def enqueue(root: Path, event: str, payload: Dict[str, Any]) -> Path:
    """Write an envelope to pending/; the name sorts by enqueue time."""
    base = _pending_dir(root)
    base.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%f")
    path = base / f"{stamp}-{uuid.uuid4().hex[:8]}.json"
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps({"event": event, "payload": payload}), encoding="utf-8")
    tmp.rename(path)
    LOG.debug("Enqueued event | event=%s | file=%s", event, path.name)
    return path


def _move(path: Path, target_dir: Path) -> Path:
    target_dir.mkdir(parents=True, exist_ok=True)
    dest = target_dir / path.name
    path.rename(dest)
    return dest


def read_envelope(path: Path) -> SpoolEnvelope:
    """Parse one envelope file; raises ValueError on bad content."""
    try:
        return SpoolEnvelope.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as err:
        raise ValueError(f"invalid envelope {path.name}: {err}") from err


class SpoolListener(Listener):
    """Polls pending/ and hands each envelope to the handler."""

    def __init__(self, directory: Path | str, poll_interval: float = 2.0) -> None:
        self.root = Path(directory)
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def process_pending(self, handler: EventHandler) -> int:
        """Handle every pending envelope once; return how many succeeded."""
        pending = _pending_dir(self.root)
        if not pending.is_dir():
            return 0
        handled = 0
        for path in sorted(pending.glob("*.json")):
            if self._stop.is_set():
                break
            try:
                envelope = read_envelope(path)
                handler.handle_event(envelope.event, envelope.payload)
            except Exception as e:
                LOG.exception("Error handling spooled event | file=%s | error=%s", path.name, e)
                _move(path, _failed_dir(self.root))
                continue
            _move(path, _done_dir(self.root))
            handled += 1
        return handled

    def _loop(self, handler: EventHandler) -> None:
        LOG.info("Spool listener started | directory=%s | poll_interval=%s", self.root, self.poll_interval)
        while not self._stop.is_set():
            try:
                self.process_pending(handler)
            except OSError as e:
                LOG.exception("Spool scan failed | directory=%s | error=%s", self.root, e)
            self._stop.wait(self.poll_interval)

    def start(self, handler: EventHandler) -> None:
        if self._thread is not None:
            return
        _pending_dir(self.root).mkdir(parents=True, exist_ok=True)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, args=(handler,), name="sweeper-spool", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
