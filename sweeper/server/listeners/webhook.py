"""Webhook HTTP listener for GitHub events.

Serves GET /health and accepts event deliveries as POST on any path. When a
secret is configured, deliveries must carry a valid ``X-Hub-Signature-256``
(or legacy ``X-Hub-Signature``) header.
"""

import hashlib
import hmac
import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs

from sweeper.server.events import EventDecodeError
from sweeper.server.listeners.base import EventHandler, Listener

LOG = logging.getLogger("sweeper.server.webhook")

SIGNATURE_HEADERS = (
    ("X-Hub-Signature-256", "sha256", hashlib.sha256),
    ("X-Hub-Signature", "sha1", hashlib.sha1),
)


def compute_signature(secret: str, body: bytes, digest: Any = hashlib.sha256) -> str:
    return hmac.new(secret.encode(), body, digest).hexdigest()


def verify_signature(secret: str, body: bytes, headers: Any) -> bool:
    """Check the delivery signature; True when no secret is configured."""
    if not secret:
        return True
    for header, prefix, digest in SIGNATURE_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        algo, _, signature = value.partition("=")
        if algo != prefix or not signature:
            return False
        return hmac.compare_digest(compute_signature(secret, body, digest), signature)
    return False


def decode_webhook_body(body: bytes, content_type: str) -> bytes | str:
    """Return the JSON document of a delivery.

    Supports raw JSON and application/x-www-form-urlencoded (payload=...).
    """
    if "application/x-www-form-urlencoded" in content_type:
        parsed = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        return (parsed.get("payload") or [""])[0]
    return body


class WebhookRequestHandler(BaseHTTPRequestHandler):
    """Handle GET /health and POST event deliveries."""

    event_handler: EventHandler
    secret: str = ""

    def do_GET(self) -> None:
        if self.path == "/health" or self.path == "/":
            self._send_json(200, {"status": "ok", "service": "sweeper"})
            return
        self.send_response(404)
        self.end_headers()

    def do_POST(self) -> None:
        raw_length = self.headers.get("Content-Length", "0")
        try:
            length = int(raw_length)
        except ValueError:
            length = -1
        if length < 0:
            LOG.warning("Rejected webhook with invalid Content-Length | path=%s | length=%r", self.path, raw_length)
            self._send_json(400, {"error": "invalid Content-Length"})
            return
        body = self.rfile.read(length) if length else b""
        if not verify_signature(self.secret, body, self.headers):
            LOG.warning("Rejected webhook with invalid signature | path=%s", self.path)
            self.send_response(404)
            self.end_headers()
            return

        event = self.headers.get("X-GitHub-Event", "")
        delivery = self.headers.get("X-GitHub-Delivery", "")
        LOG.debug("Webhook event | event=%s | delivery=%s", event, delivery)
        try:
            payload = decode_webhook_body(body, self.headers.get("Content-Type", ""))
            self.event_handler.handle_event(event, payload)
        except EventDecodeError as e:
            LOG.warning("Invalid webhook payload | event=%s | error=%s", event, e)
            self._send_json(400, {"error": str(e)})
            return
        except Exception as e:
            LOG.exception("Error handling webhook | event=%s | delivery=%s | error=%s", event, delivery, e)
            self._send_json(500, {"error": str(e)})
            return
        self._send_json(200, {"received": True})

    def _send_json(self, status: int, data: Any) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def log_message(self, format: str, *args: Any) -> None:
        LOG.debug(format, *args)


class WebhookListener(Listener):
    """HTTP server delivering webhook events; one thread per request."""

    def __init__(self, host: str, port: int, secret: str = "") -> None:
        self.host = host
        self.port = port
        self.secret = secret
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def server_address(self) -> tuple:
        if self._server is None:
            return (self.host, self.port)
        return self._server.server_address

    def _bind(self, handler: EventHandler) -> ThreadingHTTPServer:
        request_handler = type(
            "BoundWebhookRequestHandler",
            (WebhookRequestHandler,),
            {"event_handler": handler, "secret": self.secret},
        )
        self._server = ThreadingHTTPServer((self.host, self.port), request_handler)
        self._server.daemon_threads = True
        LOG.info("Webhook server listening on %s:%s", *self._server.server_address[:2])
        return self._server

    def start(self, handler: EventHandler) -> None:
        """Serve from a background thread."""
        server = self._bind(handler)
        self._thread = threading.Thread(target=server.serve_forever, name="sweeper-webhook", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._server = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
