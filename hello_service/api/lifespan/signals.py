"""
Termination signal subscription.

SIGINT / SIGTERM are delivered onto an asyncio queue; waiting for shutdown is
a blocking receive on that queue, never a polling loop.
"""
import asyncio
import signal
from typing import Dict, Iterable, Optional, Set

from ...core.logging import get_logger

logger = get_logger("signals")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TerminationSignals:
    """
    Subscribes to process termination signals for the running event loop.

    Only the first signal is queued; later ones are logged and ignored so a
    second Ctrl+C does not interrupt a shutdown already in progress.
    Original handlers are preserved and put back by restore().
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS):
        self.signals = tuple(signals)
        self.received: Optional[signal.Signals] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._original_handlers: Dict[signal.Signals, object] = {}
        self._loop_handled: Set[signal.Signals] = set()

    @property
    def installed(self) -> bool:
        return self._loop is not None

    def install(self) -> None:
        """
        Register handlers on the running loop. Safe to call more than once.

        Falls back to signal.signal() on loops without add_signal_handler
        (e.g. the Windows proactor loop).
        """
        if self._loop is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=1)

        for sig in self.signals:
            self._original_handlers[sig] = signal.getsignal(sig)
            try:
                self._loop.add_signal_handler(sig, self._deliver, sig)
                self._loop_handled.add(sig)
            except NotImplementedError:
                signal.signal(sig, self._handle_signal)

        logger.debug("termination_signals_installed", signals=[s.name for s in self.signals])

    def restore(self) -> None:
        """Put the original handlers back."""
        if self._loop is None:
            return

        for sig, handler in self._original_handlers.items():
            if sig in self._loop_handled:
                self._loop.remove_signal_handler(sig)
            if handler is not None:
                signal.signal(sig, handler)

        self._original_handlers.clear()
        self._loop_handled.clear()
        self._loop = None

    async def wait(self) -> signal.Signals:
        """
        Block until a termination signal is received.

        Returns:
            The signal that was received
        """
        if self._queue is None:
            raise RuntimeError("install() must be called before wait()")
        return await self._queue.get()

    def _handle_signal(self, signum: int, frame) -> None:
        self._loop.call_soon_threadsafe(self._deliver, signum)

    def _deliver(self, signum: int) -> None:
        sig = signal.Signals(signum)
        if self.received is not None:
            logger.warning(
                "termination_signal_ignored",
                signal=sig.name,
                first_signal=self.received.name,
            )
            return

        self.received = sig
        self._queue.put_nowait(sig)


__all__ = ["TerminationSignals", "DEFAULT_SIGNALS"]
