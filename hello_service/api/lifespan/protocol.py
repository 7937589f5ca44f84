"""
HTTP/1.1 protocol with a read deadline on the request head.

uvicorn only times out a connection once a response has completed, so a
client that connects and never finishes its request line and headers would
keep the connection open indefinitely. ReadDeadlineProtocol closes it
``read_timeout`` seconds after the request started arriving.
"""
import asyncio
import functools
from typing import Callable, Optional

from uvicorn.protocols.http.h11_impl import H11Protocol

from ...core.logging import get_logger

logger = get_logger("protocol")


class ReadDeadlineProtocol(H11Protocol):
    """
    H11Protocol that drops connections whose request head is late.

    The deadline is armed when the connection is accepted, and on a
    keep-alive connection when the first bytes of the next request arrive.
    It is cleared as soon as the request head has been parsed; the body is
    covered by TimeoutMiddleware.
    """

    def __init__(self, *args, read_timeout: float, **kwargs):
        super().__init__(*args, **kwargs)
        self.read_timeout = read_timeout
        self._read_deadline: Optional[asyncio.TimerHandle] = None

    def connection_made(self, transport) -> None:
        super().connection_made(transport)
        self._arm_read_deadline()

    def data_received(self, data: bytes) -> None:
        if self.cycle is None or self.cycle.response_complete:
            self._arm_read_deadline()

        cycle = self.cycle
        super().data_received(data)
        if self.cycle is not cycle:
            self._clear_read_deadline()

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._clear_read_deadline()
        super().connection_lost(exc)

    def _arm_read_deadline(self) -> None:
        if self._read_deadline is None:
            self._read_deadline = self.loop.call_later(
                self.read_timeout, self._on_read_deadline
            )

    def _clear_read_deadline(self) -> None:
        if self._read_deadline is not None:
            self._read_deadline.cancel()
            self._read_deadline = None

    def _on_read_deadline(self) -> None:
        self._read_deadline = None
        if self.transport.is_closing():
            return
        logger.warning(
            "request_head_timeout",
            client="%s:%d" % self.client if self.client else None,
            timeout=self.read_timeout,
        )
        self.transport.close()


def read_deadline_protocol(read_timeout: float) -> Callable[..., ReadDeadlineProtocol]:
    """Protocol factory for ``uvicorn.Config(http=...)``."""
    return functools.partial(ReadDeadlineProtocol, read_timeout=read_timeout)


__all__ = ["ReadDeadlineProtocol", "read_deadline_protocol"]
