# ============================================================================
# LIFECYCLE CONTROLLER
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Server - Listen, serve, bounded shutdown
# PURPOSE: Run the front door until told to stop, then drain within a bound
# CREATED: 13 OCT 2026
# ============================================================================
"""
Lifecycle Controller

Runs the front door app under uvicorn:

1. listen()  - bind an explicit IPv4 TCP socket. Some container networks
               never go ready when the server ends up listening on v6
               only, whatever Envoy's state, so v4 is never left to chance.
2. run()     - serve on that socket until the shutdown event is set
3. shutdown  - stop accepting, let in-flight requests finish, give up
               after shutdown_timeout seconds

Failures here are fatal and raised as FatalError subclasses:
- ListenError:   the port could not be bound (something else owns it)
- ServeError:    the server stopped without a shutdown request
- ShutdownError: draining did not finish within the bound

The caller decides what to do with them (main() exits non-zero).

Usage:
    controller = LifecycleController(app, port=8877)
    shutdown = asyncio.Event()
    await controller.run(shutdown)   # returns after a clean shutdown
"""

import asyncio
import socket
from contextlib import contextmanager
from typing import Optional, Tuple

import uvicorn
from fastapi import FastAPI

from core.config import DEFAULT_LISTEN_HOST, DEFAULT_LISTEN_PORT, DEFAULT_SHUTDOWN_TIMEOUT
from core.errors import ListenError, ServeError, ShutdownError
from core.logging import get_logger, ComponentType

logger = get_logger(__name__, ComponentType.SERVER)

LISTEN_BACKLOG = 2048


class FrontDoorServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to whoever runs it."""

    def install_signal_handlers(self) -> None:
        # uvicorn < 0.29
        pass

    @contextmanager
    def capture_signals(self):
        # uvicorn >= 0.29
        yield


class LifecycleController:
    """Owns the listener and the uvicorn server for one front door app."""

    def __init__(
        self,
        app: FastAPI,
        host: str = DEFAULT_LISTEN_HOST,
        port: int = DEFAULT_LISTEN_PORT,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.shutdown_timeout = shutdown_timeout

        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            lifespan="on",
            log_config=None,
            access_log=False,
        )
        self._server = FrontDoorServer(config)
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._serve_task: Optional[asyncio.Task] = None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), or None before listen()."""
        return self._address

    @property
    def started(self) -> bool:
        """True once uvicorn is accepting connections."""
        return self._server.started

    def listen(self) -> socket.socket:
        """
        Bind the IPv4 listener.

        Raises:
            ListenError: if the address cannot be bound
        """
        if self._socket is not None:
            return self._socket

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(LISTEN_BACKLOG)
        except OSError as e:
            sock.close()
            # Nothing else should ever be bound here at boot
            raise ListenError(self.host, self.port, e) from e

        self._socket = sock
        self._address = sock.getsockname()
        logger.info(f"Listening on {self._address[0]}:{self._address[1]} (IPv4)")
        return sock

    async def run(self, shutdown: asyncio.Event) -> None:
        """
        Serve until shutdown is set, then drain.

        Args:
            shutdown: Set by the owner (signal handler, test) to stop serving

        Raises:
            ListenError: bind failed
            ServeError: server exited on its own
            ShutdownError: drain exceeded shutdown_timeout
        """
        sock = self.listen()

        self._serve_task = asyncio.create_task(self._serve(sock))
        shutdown_wait = asyncio.create_task(shutdown.wait())

        try:
            done, _ = await asyncio.wait(
                {self._serve_task, shutdown_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            self._server.force_exit = True
            self._serve_task.cancel()
            self._close_socket()
            raise
        finally:
            shutdown_wait.cancel()

        if self._serve_task in done:
            self._close_socket()
            cause = None if self._serve_task.cancelled() else self._serve_task.exception()
            if isinstance(cause, ServeError):
                raise cause
            raise ServeError("front door server stopped unexpectedly") from cause

        await self._shutdown()

    async def _serve(self, sock: socket.socket) -> None:
        try:
            await self._server.serve(sockets=[sock])
        except SystemExit as e:
            # Newer uvicorn exits the process when lifespan startup fails
            raise ServeError(f"front door server failed to start (exit status {e.code})") from e

    async def _shutdown(self) -> None:
        logger.info(f"Shutting down (waiting up to {self.shutdown_timeout}s for requests)")
        self._server.should_exit = True

        try:
            await asyncio.wait_for(self._serve_task, timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            self._server.force_exit = True
            raise ShutdownError(
                f"graceful shutdown did not finish within {self.shutdown_timeout}s"
            ) from None
        except Exception as e:
            raise ShutdownError(f"graceful shutdown failed: {e}") from e
        finally:
            self._close_socket()

        logger.info("Front door stopped")

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()


__all__ = ["LifecycleController", "FrontDoorServer"]
