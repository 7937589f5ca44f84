"""
Server lifecycle manager.

Binds the listener, serves the ASGI app on its own task, waits for a
termination signal and drains in-flight requests within a grace period.

    RUNNING --signal--> SHUTTING_DOWN --drained / grace expired--> TERMINATED

uvicorn does the HTTP work; this class owns the socket, the signals and the
shutdown deadline.
"""
import asyncio
import contextlib
import signal
import socket
from typing import Optional

import uvicorn

from ...core.config import ListenerConfig
from ...core.exceptions import BindError, ServerStartupError, ShutdownTimeoutError
from ...core.logging import get_logger
from .base import LifecycleState
from .connections import ASGIApp, InFlightMiddleware, InFlightTracker, TimeoutMiddleware
from .protocol import read_deadline_protocol
from .signals import TerminationSignals

logger = get_logger("lifecycle")

# Slack for uvicorn to close sockets after it cancels leftover requests
FORCE_CLOSE_MARGIN = 1.0
STARTUP_POLL_INTERVAL = 0.05
LISTEN_BACKLOG = 2048


class _ManagedServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to ServerLifecycle."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class ServerLifecycle:
    """
    Owns one HTTP listener from bind to close.

    Attributes:
        app: ASGI application to serve (built with create_app)
        config: Immutable listener configuration
        state: Current LifecycleState
        tracker: Requests currently in flight
        bound_port: Port actually bound (differs from config.port when 0)
    """

    def __init__(
        self,
        app: ASGIApp,
        config: ListenerConfig,
        signals: Optional[TerminationSignals] = None,
    ):
        self.app = app
        self.config = config
        self.state = LifecycleState.CREATED
        self.tracker = InFlightTracker()
        self.signals = signals or TerminationSignals()
        self.bound_port: Optional[int] = None

        self._server: Optional[_ManagedServer] = None
        self._serve_task: Optional[asyncio.Task] = None

    # ========================================================================
    # Start
    # ========================================================================

    async def start(self) -> None:
        """
        Bind the listener and start accepting connections.

        Returns once the listener is accepting.

        Raises:
            BindError: The address could not be bound
            ServerStartupError: The listener task exited before accepting
        """
        if self.state is not LifecycleState.CREATED:
            raise RuntimeError(f"Cannot start a server in state '{self.state.value}'")

        sock = self._bind()
        self.bound_port = sock.getsockname()[1]
        self._server = self._build_server()
        self._serve_task = asyncio.create_task(
            self._server.serve(sockets=[sock]),
            name="http-listener",
        )

        while not self._server.started:
            if self._serve_task.done():
                sock.close()
                raise ServerStartupError(self._describe_listener_exit())
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self.state = LifecycleState.RUNNING
        logger.info(
            "server_running",
            address=f"{self.config.host}:{self.bound_port}",
            read_timeout=self.config.read_timeout,
            write_timeout=self.config.write_timeout,
            idle_timeout=self.config.idle_timeout,
        )

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
            sock.listen(LISTEN_BACKLOG)
        except OSError as exc:
            sock.close()
            logger.error("bind_failed", address=self.config.address, error=str(exc))
            raise BindError(self.config.address, exc.strerror or str(exc)) from exc

        sock.set_inheritable(True)
        return sock

    def _build_server(self) -> _ManagedServer:
        guarded_app = InFlightMiddleware(
            TimeoutMiddleware(
                self.app,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
            ),
            tracker=self.tracker,
        )
        uvicorn_config = uvicorn.Config(
            guarded_app,
            host=self.config.host,
            port=self.bound_port,
            http=read_deadline_protocol(self.config.read_timeout),
            lifespan="on",
            log_config=None,
            backlog=LISTEN_BACKLOG,
            timeout_keep_alive=self.config.idle_timeout,
            timeout_graceful_shutdown=self.config.shutdown_grace_period,
        )
        return _ManagedServer(uvicorn_config)

    def _describe_listener_exit(self) -> str:
        if self._serve_task.cancelled():
            return "listener task was cancelled"
        exc = self._serve_task.exception()
        if exc is not None:
            return f"{type(exc).__name__}: {exc}"
        return "listener exited before accepting connections"

    # ========================================================================
    # Termination Signal
    # ========================================================================

    async def await_termination_signal(self) -> signal.Signals:
        """
        Block until SIGINT or SIGTERM is received.

        Returns:
            The received signal
        """
        self.signals.install()
        received = await self.signals.wait()
        logger.info("shutdown_signal_received", signal=received.name)
        return received

    # ========================================================================
    # Shutdown
    # ========================================================================

    async def shutdown(self, grace_period: Optional[float] = None) -> None:
        """
        Stop accepting connections and drain in-flight requests.

        Args:
            grace_period: Seconds in-flight requests get to finish
                (defaults to config.shutdown_grace_period)

        Raises:
            ShutdownTimeoutError: Requests were still running when the grace
                period expired; they have been force-closed
        """
        if self.state is LifecycleState.TERMINATED:
            return
        if self.state is LifecycleState.SHUTTING_DOWN:
            raise RuntimeError("Shutdown already in progress")
        if self.state is LifecycleState.CREATED:
            self.state = LifecycleState.TERMINATED
            self.signals.restore()
            return

        grace = self.config.shutdown_grace_period if grace_period is None else grace_period
        loop = asyncio.get_running_loop()
        deadline = loop.time() + grace

        self.state = LifecycleState.SHUTTING_DOWN
        logger.info("shutdown_started", grace_period=grace, in_flight=self.tracker.active)

        try:
            self._stop_accepting()
            # uvicorn cancels whatever is left once this elapses
            self._server.config.timeout_graceful_shutdown = grace
            self._server.should_exit = True

            drained = await self.tracker.wait_idle(timeout=grace)
            pending = self.tracker.active
            await self._wait_listener_closed(
                max(deadline - loop.time(), 0.0) + FORCE_CLOSE_MARGIN
            )
        finally:
            self.state = LifecycleState.TERMINATED
            self.signals.restore()

        if not drained:
            logger.error("shutdown_timeout_exceeded", grace_period=grace, pending=pending)
            raise ShutdownTimeoutError(grace, pending)

        logger.info("graceful_shutdown_complete")

    def _stop_accepting(self) -> None:
        for server in self._server.servers:
            server.close()

    async def _wait_listener_closed(self, timeout: float) -> None:
        done, _ = await asyncio.wait({self._serve_task}, timeout=timeout)
        if not done:
            logger.warning("listener_force_cancelled", timeout=timeout)
            self._server.force_exit = True
            self._serve_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._serve_task
            return

        if not self._serve_task.cancelled() and self._serve_task.exception() is not None:
            exc = self._serve_task.exception()
            logger.error("listener_failed", error=str(exc), error_type=type(exc).__name__)

    # ========================================================================
    # Full Run
    # ========================================================================

    async def run(self) -> None:
        """
        Start, wait for a termination signal, then shut down.

        Signal handlers are installed before binding, so a signal received
        while the server is still starting leads to a graceful shutdown as
        soon as it is up. Returns only after shutdown completes.

        Raises:
            BindError: The address could not be bound
            ShutdownTimeoutError: Shutdown had to force-close requests
        """
        self.signals.install()
        try:
            await self.start()
            await self.await_termination_signal()
        finally:
            await self.shutdown()


__all__ = ["ServerLifecycle", "FORCE_CLOSE_MARGIN"]
