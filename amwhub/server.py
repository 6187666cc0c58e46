"""HTTP server for PubSubHubbub callbacks"""

import json
import logging
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, Optional, Type
from urllib.parse import parse_qs, urlparse

from .core import constants

logger = logging.getLogger("amwhub.server")

STATUS_BODIES = {
    200: b"OK",
    204: b"",
    403: b"Forbidden",
    404: b"Not Found",
    413: b"Payload Too Large",
    500: b"Error",
}


class CallbackHandler(BaseHTTPRequestHandler):
    """HTTP handler for PubSubHubbub callbacks"""

    bridge: Optional["NotificationBridge"] = None
    metrics: Optional["Metrics"] = None
    callback_path: str = constants.DEFAULT_CALLBACK_PATH

    def _send(self, status: int, body: bytes = b"", content_type: str = "text/plain") -> None:
        self.send_response(status)
        if status != 204:
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and status != 204:
            self.wfile.write(body)

    def _send_error_response(self) -> None:
        try:
            self._send(500, STATUS_BODIES[500])
        except Exception:
            logger.debug("Could not send error response, headers already sent")

    def do_GET(self) -> None:
        """Handle verification requests from the hub and metrics reads"""
        try:
            parsed = urlparse(self.path)

            if parsed.path == constants.METRICS_PATH:
                snapshot: Dict[str, int] = self.metrics.dump() if self.metrics else {}
                self._send(200, json.dumps(snapshot).encode("utf-8"), "application/json")
                return

            if parsed.path != self.callback_path or self.bridge is None:
                self._send(404, b"Not Found: " + self.path.encode("utf-8"))
                return

            params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
            status, body = self.bridge.verify(params)
            self._send(status, body.encode("utf-8"))
        except Exception as e:
            logger.error(f"Error in do_GET: {e}", exc_info=True)
            self._send_error_response()

    def do_POST(self) -> None:
        """Handle feed notifications from the hub"""
        try:
            content_length = int(self.headers.get("Content-Length", 0))
            if content_length > constants.MAX_NOTIFICATION_BYTES:
                logger.warning(f"Rejecting {content_length} byte notification from {self.address_string()}")
                self.close_connection = True
                self._send(413, STATUS_BODIES[413])
                return

            body = self.rfile.read(content_length)

            if urlparse(self.path).path != self.callback_path or self.bridge is None:
                self._send(404, STATUS_BODIES[404])
                return

            status = self.bridge.notify(body, self.headers)
            self._send(status, STATUS_BODIES.get(status, b""))
        except Exception as e:
            logger.error(f"Error in do_POST: {e}", exc_info=True)
            self._send_error_response()

    def log_message(self, format: str, *args: Any) -> None:
        """Override to use our logger"""
        logger.debug(f"{self.address_string()} - {format % args}")


def make_handler(
    bridge: "NotificationBridge",
    metrics: Optional["Metrics"] = None,
    callback_path: str = constants.DEFAULT_CALLBACK_PATH,
) -> Type[CallbackHandler]:
    """Bind a bridge to a handler class without touching CallbackHandler itself"""
    return type(
        "BoundCallbackHandler",
        (CallbackHandler,),
        {"bridge": bridge, "metrics": metrics, "callback_path": callback_path},
    )


def create_server(
    config: "HubConfig", bridge: "NotificationBridge", metrics: Optional["Metrics"] = None
) -> HTTPServer:
    handler = make_handler(bridge, metrics, config.callback_path)
    server = HTTPServer((config.bind_address, config.server_port), handler)
    server.timeout = 1.0  # Check running flag every second
    return server
