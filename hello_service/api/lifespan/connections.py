"""
Per-request guards wrapped around the ASGI application by the lifecycle.

- InFlightTracker / InFlightMiddleware: count requests still being handled,
  so shutdown can wait for them to drain.
- TimeoutMiddleware: read and write deadlines for each request.

Both are plain ASGI wrappers; lifespan and other non-HTTP scopes pass through.
"""
import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List

from fastapi.responses import JSONResponse

from ...core.logging import LogContext, get_logger

logger = get_logger("connections")

Scope = Dict[str, Any]
Message = Dict[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


# ============================================================================
# In-flight Tracking
# ============================================================================

class InFlightTracker:
    """
    Counts HTTP requests currently being handled.

    Lives on a single event loop; no locking needed.
    """

    def __init__(self):
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active(self) -> int:
        """Number of requests currently in flight"""
        return self._active

    def enter(self) -> None:
        self._active += 1
        self._idle.clear()

    def exit(self) -> None:
        self._active -= 1
        if self._active <= 0:
            self._active = 0
            self._idle.set()

    async def wait_idle(self, timeout: float) -> bool:
        """
        Wait until no request is in flight.

        Args:
            timeout: Maximum seconds to wait

        Returns:
            True if the tracker drained, False if the timeout elapsed first
        """
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False


class InFlightMiddleware:
    """Registers every HTTP request with an InFlightTracker."""

    def __init__(self, app: ASGIApp, tracker: InFlightTracker):
        self.app = app
        self.tracker = tracker

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        self.tracker.enter()
        try:
            await self.app(scope, receive, send)
        finally:
            self.tracker.exit()


# ============================================================================
# Read / Write Deadlines
# ============================================================================

class TimeoutMiddleware:
    """
    Enforces per-request read and write deadlines.

    Read: the whole request body must arrive within ``read_timeout`` of the
    request starting, otherwise 408 is returned without calling the app.
    The body is buffered and replayed to the app.

    Write: the app must finish its response within ``write_timeout``.
    If nothing was sent yet the client gets 503, otherwise
    ``asyncio.TimeoutError`` is raised so the server drops the half-written
    connection. Exceptions raised by the app, its own timeouts included,
    pass through unchanged.
    """

    def __init__(self, app: ASGIApp, read_timeout: float, write_timeout: float):
        self.app = app
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        with LogContext(method=scope.get("method"), path=scope.get("path")):
            try:
                buffered = await asyncio.wait_for(
                    self._read_body(receive), timeout=self.read_timeout
                )
            except asyncio.TimeoutError:
                logger.warning("request_read_timeout", timeout=self.read_timeout)
                await self._reject(scope, receive, send, 408, "Request Timeout")
                return

            async def replay() -> Message:
                if buffered:
                    return buffered.popleft()
                return await receive()

            response_started = False

            async def tracked_send(message: Message) -> None:
                nonlocal response_started
                if message["type"] == "http.response.start":
                    response_started = True
                await send(message)

            handler = asyncio.ensure_future(self.app(scope, replay, tracked_send))
            try:
                done, _ = await asyncio.wait({handler}, timeout=self.write_timeout)
            except asyncio.CancelledError:
                handler.cancel()
                raise

            if done:
                # Errors from the app itself, TimeoutError included, propagate as-is
                handler.result()
                return

            handler.cancel()
            await asyncio.wait({handler})
            logger.warning(
                "response_write_timeout",
                timeout=self.write_timeout,
                response_started=response_started,
            )
            if response_started:
                raise asyncio.TimeoutError(
                    f"Response not completed within {self.write_timeout:g}s"
                )
            await self._reject(scope, replay, send, 503, "Response Timeout")

    @staticmethod
    async def _read_body(receive: Receive) -> Deque[Message]:
        messages: List[Message] = []
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request" or not message.get("more_body", False):
                return deque(messages)

    @staticmethod
    async def _reject(
        scope: Scope, receive: Receive, send: Send, status_code: int, detail: str
    ) -> None:
        response = JSONResponse(
            {"detail": detail},
            status_code=status_code,
            headers={"Connection": "close"},
        )
        await response(scope, receive, send)


__all__ = ["InFlightTracker", "InFlightMiddleware", "TimeoutMiddleware"]
