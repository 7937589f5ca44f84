import asyncio
import os
import signal
import sys

import pytest

from hello_service.api.lifespan.signals import TerminationSignals

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")


@pytest.mark.asyncio
async def test_wait_returns_received_signal():
    signals = TerminationSignals()
    signals.install()
    try:
        asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGTERM)
        received = await asyncio.wait_for(signals.wait(), timeout=2.0)
    finally:
        signals.restore()

    assert received is signal.SIGTERM
    assert signals.received is signal.SIGTERM


@pytest.mark.asyncio
async def test_sigint_is_a_termination_signal():
    signals = TerminationSignals()
    signals.install()
    try:
        os.kill(os.getpid(), signal.SIGINT)
        received = await asyncio.wait_for(signals.wait(), timeout=2.0)
    finally:
        signals.restore()

    assert received is signal.SIGINT


@pytest.mark.asyncio
async def test_later_signals_are_ignored():
    signals = TerminationSignals()
    signals.install()
    try:
        os.kill(os.getpid(), signal.SIGTERM)
        assert await asyncio.wait_for(signals.wait(), timeout=2.0) is signal.SIGTERM

        os.kill(os.getpid(), signal.SIGINT)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(signals.wait(), timeout=0.2)
    finally:
        signals.restore()

    assert signals.received is signal.SIGTERM


@pytest.mark.asyncio
async def test_restore_puts_original_handlers_back():
    before = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}

    signals = TerminationSignals()
    signals.install()
    signals.install()  # idempotent
    assert signals.installed
    signals.restore()

    assert not signals.installed
    assert {sig: signal.getsignal(sig) for sig in before} == before


@pytest.mark.asyncio
async def test_wait_requires_install():
    with pytest.raises(RuntimeError):
        await TerminationSignals().wait()
