import asyncio
import socket

import pytest

from hello_service.api.main import create_app
from hello_service.core.config import ListenerConfig, Settings, reset_settings


def free_port() -> int:
    """Ask the OS for a port that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def listener_config(grace_period: float = 5.0, **overrides) -> ListenerConfig:
    values = dict(
        host="127.0.0.1",
        port=0,
        read_timeout=5.0,
        write_timeout=10.0,
        idle_timeout=60.0,
        shutdown_grace_period=grace_period,
    )
    values.update(overrides)
    return ListenerConfig(**values)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(API_HOST="127.0.0.1", API_PORT=0, _env_file=None)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def slow_app(settings):
    """The service app plus a /slow route that sleeps before answering."""
    app = create_app(settings)

    @app.get("/slow")
    async def slow(seconds: float = 2.0):
        await asyncio.sleep(seconds)
        return {"slept": seconds}

    return app
