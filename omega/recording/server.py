"""
HTTP delivery of the animated page.

The browser recorders only need a URL. This server provides one: a handler
page that loads a small shim implementing the console protocol, followed by
the user's animation script.
"""

import threading
from pathlib import Path
from typing import Optional

from flask import Flask, Response, abort
from werkzeug.serving import make_server

from omega.config_models import ServerConfig
from omega.logging_config import get_logger

HANDLER_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>omega</title>
    <style>html, body { margin: 0; background: transparent; }</style>
  </head>
  <body>
    <script src="/assets/omega.js"></script>
    <script src="/animation.js"></script>
  </body>
</html>
"""

# Console protocol helpers available to the animation as window.Omega
OMEGA_SHIM = """(function () {
  function send(type, action, message) {
    console.info(JSON.stringify({type: type, action: action, message: message}));
  }
  window.Omega = {
    send: function (message) { send("message", "", String(message)); },
    start: function () { send("command", "start", "Start recording"); },
    stop: function () { send("command", "stop", "Stop recording"); },
    done: function () { send("command", "done", "Done"); },
    ready: function (fn) {
      if (document.readyState !== "loading") {
        fn();
      } else {
        document.addEventListener("DOMContentLoaded", fn);
      }
    }
  };
})();
"""


class AnimationServer:
    """Serves the handler page and the animation script on a background thread."""

    def __init__(self, config: ServerConfig, script_path: Optional[Path] = None):
        """
        Initialize the server.

        Args:
            config: Host, port and default script
            script_path: Animation script overriding the configured one
        """
        self.config = config
        self.script_path = script_path or config.script_path
        self.logger = get_logger(__name__)
        self.app = Flask(__name__)
        self._setup_routes()
        self._server = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return self.config.handler_url

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.route('/handler')
        def handler():
            """Page recorded by the browser."""
            return Response(HANDLER_PAGE, mimetype="text/html")

        @self.app.route('/assets/omega.js')
        def shim():
            """Console protocol helpers."""
            return Response(OMEGA_SHIM, mimetype="application/javascript")

        @self.app.route('/animation.js')
        def animation():
            """The user's animation script."""
            if self.script_path is None or not Path(self.script_path).is_file():
                abort(404)
            return Response(Path(self.script_path).read_text(encoding="utf-8"), mimetype="application/javascript")

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self.logger.info(f"Starting animation server on {self.config.host}:{self.config.port}")
        self._server = make_server(self.config.host, self.config.port, self.app, threaded=True)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="AnimationServer"
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the server."""
        if self._server is not None:
            self._server.shutdown()
            self._server = None
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

        self.logger.info("Animation server stopped")

    def __enter__(self) -> "AnimationServer":
        self.start()
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        self.stop()
