"""Background uvicorn server for metrics exposition."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL_SECONDS = 0.05
STARTUP_TIMEOUT_SECONDS = 10.0
SHUTDOWN_TIMEOUT_SECONDS = 5.0


class MetricsServer:
    """Serves an app from a dedicated thread with its own event loop.

    The endpoint keeps answering while the suite's loop is idle, e.g. while
    behave runs synchronous steps. The owning suite decides when to stop.
    """

    def __init__(self, app: FastAPI, *, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def bound_port(self) -> int | None:
        """Port the socket is bound to (resolves ``port=0``)."""
        if self._server is None or not self._server.started:
            return None
        for server in self._server.servers:
            for sock in server.sockets:
                return sock.getsockname()[1]
        return None

    def _build_server(self, log_level: str = "warning") -> uvicorn.Server:
        uvicorn_config = uvicorn.Config(
            self._app,
            host=self._host,
            port=self._port,
            log_level=log_level,
            log_config=None,  # Use shared logging config, not uvicorn's
        )
        return uvicorn.Server(uvicorn_config)

    def _serve(self, server: uvicorn.Server) -> None:
        try:
            asyncio.run(server.serve())
        except SystemExit:
            # uvicorn exits when the socket cannot be bound
            logger.error(
                "metrics_server_failed",
                extra={"server.host": self._host, "server.port": self._port},
            )

    async def start(self) -> None:
        """Start serving and wait until the socket is bound."""
        if self.running:
            return
        server = self._build_server()
        thread = threading.Thread(
            target=self._serve, args=(server,), name="regress-metrics", daemon=True
        )
        self._server, self._thread = server, thread
        thread.start()

        deadline = asyncio.get_running_loop().time() + STARTUP_TIMEOUT_SECONDS
        while not server.started:
            if not thread.is_alive():
                self._server = None
                self._thread = None
                return
            if asyncio.get_running_loop().time() >= deadline:
                logger.warning("metrics_server_start_slow")
                break
            await asyncio.sleep(STARTUP_POLL_INTERVAL_SECONDS)

        logger.info(
            "metrics_server_started",
            extra={"server.host": self._host, "server.port": self.bound_port},
        )

    async def stop(self) -> None:
        """Request shutdown and wait briefly for the serving thread."""
        if self._server is None or self._thread is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.to_thread(self._thread.join, SHUTDOWN_TIMEOUT_SECONDS)
            if self._thread.is_alive():
                logger.warning("metrics_server_stop_timeout")
        finally:
            self._server = None
            self._thread = None
        logger.info("metrics_server_stopped")

    async def serve_forever(self) -> None:
        """Serve in the foreground until the process is signalled."""
        await self._build_server(log_level="info").serve()
