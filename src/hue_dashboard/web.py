"""Web interface for the Hue dashboard.

Provides an HTTP server with:
  - The dashboard page, rendered server side in one response
  - Session attach: runs the page's UI actions once the browser is live
  - Callback dispatch: client event listeners post their token back here
  - Bridge configuration as JSON

Runs in a daemon thread.
"""

from __future__ import annotations

import json
import logging
import re
import socket
import threading
from functools import partial
from html import escape
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING

from hue_dashboard.session import UnknownCallbackError, UnknownSessionError
from hue_dashboard.state import DEFAULT_USER_ID
from hue_dashboard.tiles import build_dashboard
from hue_dashboard.web_helpers import CALLBACK_FN

if TYPE_CHECKING:
    from hue_dashboard.main import Server

log = logging.getLogger(__name__)

_SESSION_PATH = re.compile(r"^/api/session/(?P<session_id>[A-Za-z0-9_-]+)/(?P<action>attach|callback)$")


# ---------------------------------------------------------------------------
# HTML template
# ---------------------------------------------------------------------------

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
  body {{ max-width: 1100px; margin: 0 auto; padding: 1.5rem; font-family: sans-serif;
          background: #1a1c22; color: #dde; }}
  .tiles {{ display: flex; flex-wrap: wrap; gap: 1rem; }}
  .tile {{ border: 1px solid #334; border-radius: .5rem; padding: .8rem; min-width: 14rem; }}
  .brightness-bar {{ height: 8px; background: #334; border-radius: 4px; margin: .5rem 0;
                     cursor: pointer; overflow: hidden; }}
  .brightness-fill {{ height: 100%; background: #ffd54f; }}
  .badge.unreachable {{ color: #f44336; font-size: .75rem; }}
</style>
</head>
<body>
<h1>{title}</h1>
<div class="tiles">
{tiles}
</div>
<script>
const SESSION_ID = {session_id};

function hueRun(scripts) {{
  for (const script of scripts) {{
    (new Function(script))();
  }}
}}

function huePost(action, body) {{
  return fetch('/api/session/' + SESSION_ID + '/' + action, {{
    method: 'POST',
    headers: {{ 'Content-Type': 'application/json' }},
    body: JSON.stringify(body),
  }}).then(r => r.json()).then(data => {{
    if (data.ok) {{ hueRun(data.scripts); }} else {{ console.error(data.error); }}
  }});
}}

function {callback_fn}(token, args) {{
  huePost('callback', {{ token: token, args: args }});
}}

document.addEventListener('DOMContentLoaded', () => huePost('attach', {{}}));
</script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Request handler
# ---------------------------------------------------------------------------


class _WebHandler(BaseHTTPRequestHandler):
    """HTTP handler with reference to the running Server instance."""

    server_ref: Server

    def __init__(self, server_ref: Server, *args, **kwargs):
        self.server_ref = server_ref
        super().__init__(*args, **kwargs)

    def log_message(self, format, *args):  # noqa: A002
        log.debug("%s - %s", self.address_string(), format % args)

    # ----- GET -----

    def do_GET(self) -> None:  # noqa: N802
        try:
            if self.path == "/":
                self._serve_index()
            elif self.path == "/api/health":
                self._serve_json({"ok": True, "status": "running"})
            elif self.path == "/api/bridge":
                self._serve_bridge_config()
            else:
                self.send_error(404)
        except Exception as exc:
            self._try_error_response(exc)

    # ----- POST -----

    def do_POST(self) -> None:  # noqa: N802
        try:
            match = _SESSION_PATH.match(self.path)
            if match is None:
                self.send_error(404)
            elif match["action"] == "attach":
                self._handle_attach(match["session_id"])
            else:
                self._handle_callback(match["session_id"])
        except Exception as exc:
            self._try_error_response(exc)

    def _try_error_response(self, exc: Exception) -> None:
        """Try to send a 500 JSON error. Give up if the connection is broken."""
        log.error("Request error on %s: %s", self.path, exc)
        try:
            self._serve_json({"ok": False, "error": "Internal server error"}, code=500)
        except OSError as e:
            log.debug("Could not send error response: %s", e)

    # =====================================================================
    # Page
    # =====================================================================

    def _serve_index(self) -> None:
        srv = self.server_ref
        session = srv.sessions.create()
        page = build_dashboard(srv, DEFAULT_USER_ID)
        html = page.render(
            _HTML_TEMPLATE,
            title=escape(srv.config.page_title),
            session_id=json.dumps(session.session_id),
            callback_fn=CALLBACK_FN,
        )
        session.page = page
        session.html = html
        log.debug("Session %s: %d tiles, %d UI actions", session.session_id, len(page.tiles), len(page.ui_actions))
        self._send_html(html)

    def _serve_bridge_config(self) -> None:
        state = self.server_ref.app_state
        if state is None:
            self._serve_json({"ok": False, "error": "Bridge configuration not loaded"}, code=503)
            return
        self._serve_json({"ok": True, "config": state.bc.to_json()})

    # =====================================================================
    # Sessions
    # =====================================================================

    def _handle_attach(self, session_id: str) -> None:
        try:
            session = self.server_ref.sessions.get(session_id)
        except UnknownSessionError:
            self._serve_json({"ok": False, "error": "Unknown session"}, code=404)
            return

        count = session.attach_page()
        if count:
            log.debug("Session %s: registered %d UI actions", session_id, count)
        self._serve_json({"ok": True, "scripts": session.flush_scripts()})

    def _handle_callback(self, session_id: str) -> None:
        data = self._read_json_body()
        if data is None:
            return
        if not self._require_keys(data, "token"):
            return
        if not isinstance(data["token"], str):
            self._serve_json({"ok": False, "error": "'token' must be a string"}, code=400)
            return
        args = data.get("args", [])
        if not isinstance(args, list):
            self._serve_json({"ok": False, "error": "'args' must be a list"}, code=400)
            return

        try:
            session = self.server_ref.sessions.get(session_id)
            session.invoke(data["token"], args)
        except UnknownSessionError:
            self._serve_json({"ok": False, "error": "Unknown session"}, code=404)
            return
        except UnknownCallbackError:
            self._serve_json({"ok": False, "error": "Unknown callback"}, code=404)
            return
        self._serve_json({"ok": True, "scripts": session.flush_scripts()})

    # =====================================================================
    # Shared helpers
    # =====================================================================

    def _read_json_body(self) -> dict | None:
        """Read and parse JSON request body. Sends 400 on error."""
        try:
            length = int(self.headers.get("Content-Length", 0))
            body = self.rfile.read(length).decode("utf-8")
            data = json.loads(body)
        except (json.JSONDecodeError, ValueError):
            self._serve_json({"ok": False, "error": "Invalid JSON"}, code=400)
            return None
        if not isinstance(data, dict):
            self._serve_json({"ok": False, "error": "Expected JSON object"}, code=400)
            return None
        return data

    def _require_keys(self, data: dict, *keys: str) -> bool:
        """Validate that all required keys are present and non-empty.

        Sends a 400 response with missing key details if validation fails.

        Returns:
            True if all keys are present and have truthy values.
        """
        missing = [k for k in keys if not data.get(k)]
        if missing:
            self._serve_json(
                {"ok": False, "error": f"Missing required fields: {', '.join(missing)}"},
                code=400,
            )
            return False
        return True

    def _serve_json(self, data: dict, code: int = 200) -> None:
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_html(self, html: str) -> None:
        body = html.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class _DualStackHTTPServer(ThreadingHTTPServer):
    """HTTP server that accepts both IPv4 and IPv6 connections."""

    address_family = socket.AF_INET6
    allow_reuse_address = True
    daemon_threads = True

    def server_bind(self) -> None:
        # Allow dual-stack: accept IPv4 connections on the IPv6 socket
        self.socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        super().server_bind()


def start_web_server(server: Server, port: int = 8001) -> ThreadingHTTPServer:
    """Start the web interface on a daemon thread.

    Args:
        server: The running Server instance to expose via the web UI.
        port: TCP port to listen on.

    Returns:
        The HTTP server, so callers can shut it down.
    """
    handler = partial(_WebHandler, server)
    try:
        httpd = _DualStackHTTPServer(("::", port), handler)
    except OSError:
        # Fallback to IPv4-only if IPv6 is not available
        httpd = ThreadingHTTPServer(("", port), handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    log.info("Web interface running at http://0.0.0.0:%d/", port)
    return httpd
