"""HTTP callback listener for the OAuth2 PKCE flow.

The listener binds the redirect URI's host:port, accepts exactly one
callback on the redirect path and hands ``code`` / ``state`` / ``error``
back to the waiting flow. Token exchange happens in the flow, not here.
"""

from __future__ import annotations

import html
import http.server
import logging
import threading
import urllib.parse
from dataclasses import dataclass

from .constants import OAuthDefaults, OAuthProtocol

_logger = logging.getLogger(__name__)

# HTML page shown after the browser hits the callback
_CALLBACK_RECEIVED_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Authorization received</title>
  </head>
  <body>
    <div style="max-width: 640px; margin: 80px auto;
                font-family: system-ui, -apple-system, sans-serif;">
      <h1>Authorization received</h1>
      <p>You can now close this window and return to the terminal.</p>
    </div>
  </body>
</html>
"""


@dataclass(frozen=True)
class CallbackResult:
    """Query parameters delivered to the redirect URI."""

    code: str | None
    state: str | None
    error: str | None = None
    error_description: str | None = None


class OAuthCallbackServer(http.server.ThreadingHTTPServer):
    """One-shot HTTP server receiving the OAuth2 redirect.

    Each connection is served on its own daemon thread; an idle connection
    blocks neither the callback nor the shutdown.

    Use as a context manager; leaving the ``with`` block stops the serving
    thread and closes the listening socket whatever happened inside.

    Example:
        >>> with OAuthCallbackServer("localhost", 8080, "/callback") as server:
        ...     result = server.wait_for_callback(timeout=300)
    """

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, host: str, port: int, callback_path: str) -> None:
        super().__init__((host, port), OAuthCallbackHandler, bind_and_activate=True)
        self.callback_path = callback_path or "/"

        self._result: CallbackResult | None = None
        self._received = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Serve requests from a background thread."""
        self._thread = threading.Thread(
            target=self.serve_forever,
            kwargs={"poll_interval": OAuthDefaults.SERVER_POLL_INTERVAL},
            name="oauth-callback-server",
            daemon=True,
        )
        self._thread.start()
        _logger.debug("Callback listener on %s:%s%s", *self.server_address[:2], self.callback_path)

    def stop(self) -> None:
        """Stop serving and release the socket."""
        if self._thread is not None:
            self.shutdown()
            self._thread.join()
            self._thread = None
        self.server_close()

    def __enter__(self) -> OAuthCallbackServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def deliver(self, result: CallbackResult) -> bool:
        """Record the callback. Only the first delivery counts.

        Returns:
            True if this was the first callback
        """
        with self._lock:
            if self._result is not None:
                return False
            self._result = result
        self._received.set()
        return True

    def wait_for_callback(self, timeout: float) -> CallbackResult | None:
        """Block until the callback arrives.

        Returns:
            The callback parameters, or None on timeout
        """
        if not self._received.wait(timeout=timeout):
            return None
        with self._lock:
            return self._result


class OAuthCallbackHandler(http.server.BaseHTTPRequestHandler):
    """Handle the OAuth redirect request."""

    server: OAuthCallbackServer

    # Idle connections are dropped after this many seconds
    timeout = OAuthDefaults.CONNECTION_TIMEOUT

    def do_GET(self) -> None:
        parsed = urllib.parse.urlparse(self.path)

        if parsed.path != self.server.callback_path:
            self.send_error(OAuthProtocol.HTTP_NOT_FOUND, "Not Found")
            return

        params = urllib.parse.parse_qs(parsed.query)
        result = CallbackResult(
            code=params.get("code", [None])[0],
            state=params.get("state", [None])[0],
            error=params.get("error", [None])[0],
            error_description=params.get("error_description", [None])[0],
        )

        if result.error:
            self._send_error_page(result.error_description or result.error)
        elif not result.code:
            self._send_error_page("Missing authorization code")
        else:
            self._send_html(_CALLBACK_RECEIVED_HTML)

        self.server.deliver(result)

    def do_POST(self) -> None:
        self.send_error(OAuthProtocol.HTTP_NOT_FOUND, "Not Found")

    def log_message(self, fmt: str, *args: object) -> None:
        _logger.debug("callback server: " + fmt, *args)

    def _send_html(self, body: str) -> None:
        encoded = body.encode()
        self.send_response(OAuthProtocol.HTTP_OK)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _send_error_page(self, error: str) -> None:
        body = f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Authorization failed</title>
  </head>
  <body>
    <div style="max-width: 640px; margin: 80px auto;
                font-family: system-ui, -apple-system, sans-serif;">
      <h1>Authorization failed</h1>
      <p>{html.escape(error)}</p>
    </div>
  </body>
</html>
"""
        self._send_html(body)


__all__ = ["CallbackResult", "OAuthCallbackServer", "OAuthCallbackHandler"]
