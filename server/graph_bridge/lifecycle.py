"""
Server Lifecycle

Binds the listening socket exactly once and serves the bridge from a
background thread. A bind failure raises StartupFailureError before any
thread is started; callers treat it as fatal.
"""

import contextlib
import logging
import socket
import threading
import time
from typing import List, Optional, Tuple

import uvicorn
from fastapi import FastAPI

from graph_bridge.core.config import settings
from graph_bridge.core.errors import StartupFailureError
from graph_bridge.core.logging_config import (
    align_server_loggers,
    log_structured,
    resolve_log_level,
)

logger = logging.getLogger(__name__)

ENDPOINTS: List[Tuple[str, str, str]] = [
    ("GET", "/mcp/resources", "List all resources"),
    ("GET", "/mcp/resources/{uri}", "Read a specific resource"),
    ("GET", "/mcp/tools", "List all tools"),
    ("POST", "/mcp/tools/{name}", "Call a tool"),
    ("GET", "/mcp/prompts", "List all prompts"),
    ("GET", "/mcp/prompts/{name}", "Get a specific prompt"),
    ("GET", "/mcp/results/{ticket}", "Poll a dispatched command's result"),
    ("POST", "/mcp/results/{ticket}", "Publish a result (application side)"),
    ("GET", "/mcp/events", "Stream published results (SSE)"),
]


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind and listen on host:port, or raise StartupFailureError."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        return socket.create_server((host, port), family=family, backlog=2048)
    except OSError as e:
        raise StartupFailureError(
            f"Failed to bind bridge server port {host}:{port}: {e.strerror or e}",
            {"host": host, "port": port, "errno": e.errno},
        ) from e


class ServerLifecycle:
    """
    Owns the bridge's listening socket and its uvicorn server thread.

    ``start`` may succeed once per instance. There is no restart.
    """

    def __init__(
        self,
        app: FastAPI,
        host: Optional[str] = None,
        port: Optional[int] = None,
        log_level: Optional[str] = None,
    ):
        self.app = app
        self.host = host or settings.MCP_HOST
        self.port = int(port if port is not None else settings.MCP_PORT)
        self.log_level = resolve_log_level(log_level)
        self._socket: Optional[socket.socket] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def bound_port(self) -> Optional[int]:
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, startup_timeout: float = 10.0) -> None:
        """Bind the port and serve in the background. Raises StartupFailureError."""
        if self._thread is not None:
            raise StartupFailureError(
                "Bridge server already started",
                {"host": self.host, "port": self.bound_port},
            )

        self._socket = bind_listener(self.host, self.port)
        port = self.bound_port

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=port,
            log_level=self.log_level.lower(),
            log_config=None,
            lifespan="on",
        )
        # uvicorn.Config resets its loggers to log_level
        align_server_loggers(self.log_level)
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._serve,
            name="graph-bridge-http",
            daemon=True,
        )
        self._thread.start()

        if not self._wait_started(startup_timeout):
            self.stop()
            raise StartupFailureError(
                "Bridge server did not finish starting",
                {"host": self.host, "port": port},
            )

        self._log_banner(port)

    def stop(self, timeout: float = 5.0) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        if self._socket is not None:
            with contextlib.suppress(OSError):
                self._socket.close()
        log_structured(logger, "info", "server_stopped", host=self.host, port=self.port)

    def wait(self) -> None:
        """Block until the server thread exits"""
        if self._thread is not None:
            self._thread.join()

    def _serve(self) -> None:
        try:
            self._server.run(sockets=[self._socket])
        except Exception:
            logger.exception("Bridge server thread crashed")

    def _wait_started(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._server.started:
                return True
            if not self._thread.is_alive():
                return False
            time.sleep(0.01)
        return self._server.started

    def _log_banner(self, port: int) -> None:
        log_structured(logger, "info", "server_listening", host=self.host, port=port)
        logger.info(f"[MCP Server] HTTP server listening on http://{self.host}:{port}")
        logger.info("[MCP Server] Endpoints:")
        for method, path, summary in ENDPOINTS:
            logger.info(f"  - {method:<5} {path:<24} {summary}")
