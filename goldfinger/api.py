"""HTTP API that lets the user view and modify display settings."""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable

from goldfinger.errors import ValidationError
from goldfinger.rendering.frame_data import DisplayState
from goldfinger.state import SettingsStore

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 4096


class SettingsHandler(BaseHTTPRequestHandler):
    settings: SettingsStore
    current_state: Callable[[], DisplayState | None]

    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/healthz":
            self._send_text(200, "ok")
            return

        if self.path == "/lcd":
            self._send_json(200, self.settings.get().to_dict())
            return

        if self.path == "/lcd/state":
            state = self.current_state()
            if state is None:
                self._send_json(404, {"error": "No state computed yet"})
                return
            self._send_json(200, state.to_dict())
            return

        self._send_json(404, {"error": f"Not found: {self.path}"})

    def do_PUT(self) -> None:  # noqa: N802
        if self.path != "/lcd":
            self._send_json(404, {"error": f"Not found: {self.path}"})
            return

        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length < 0:
            self._send_json(400, {"error": "Invalid Content-Length header"})
            return
        if length > MAX_BODY_BYTES:
            self._send_json(413, {"error": "Request body too large"})
            return
        try:
            body = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self._send_json(400, {"error": "Request body must be JSON"})
            return
        if not isinstance(body, dict):
            self._send_json(400, {"error": "Request body must be a JSON object"})
            return

        try:
            updated = self.settings.set(body)
        except ValidationError as exc:
            self._send_json(400, {"error": str(exc)})
            return
        self._send_json(200, updated.to_dict())

    do_POST = do_PUT  # noqa: N815

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_text(self, status: int, text: str) -> None:
        body = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s %s", self.address_string(), format % args)


def make_server(
    host: str,
    port: int,
    settings: SettingsStore,
    current_state: Callable[[], DisplayState | None],
) -> ThreadingHTTPServer:
    """Build a server bound to ``host:port``; port 0 picks a free port."""
    handler = type(
        "BoundSettingsHandler",
        (SettingsHandler,),
        {"settings": settings, "current_state": staticmethod(current_state)},
    )
    return ThreadingHTTPServer((host, port), handler)


def start_server(server: ThreadingHTTPServer) -> threading.Thread:
    thread = threading.Thread(target=server.serve_forever, name="settings-api", daemon=True)
    thread.start()
    logger.info("Settings API listening on %s:%s", *server.server_address[:2])
    return thread


__all__ = ["SettingsHandler", "make_server", "start_server"]
