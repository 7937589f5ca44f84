import dataclasses

import pytest
from pydantic import ValidationError

from hello_service.core.config import ListenerConfig, Settings, get_settings


def test_defaults_match_listener_contract():
    settings = Settings(_env_file=None)

    assert settings.API_PORT == 8080
    assert settings.READ_TIMEOUT == 5.0
    assert settings.WRITE_TIMEOUT == 10.0
    assert settings.IDLE_TIMEOUT == 60.0
    assert settings.SHUTDOWN_GRACE_PERIOD == 5.0
    assert settings.GREETING_MESSAGE == "Hello from Dominic Ifechuku"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("API_PORT", "9090")
    monkeypatch.setenv("shutdown_grace_period", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.API_PORT == 9090
    assert settings.SHUTDOWN_GRACE_PERIOD == 2.5
    assert settings.LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize(
    "field, value",
    [
        ("API_PORT", -1),
        ("API_PORT", 70000),
        ("READ_TIMEOUT", 0),
        ("SHUTDOWN_GRACE_PERIOD", -5),
        ("LOG_FORMAT", "xml"),
    ],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_listener_config_is_frozen():
    config = Settings(API_HOST="127.0.0.1", API_PORT=8181, _env_file=None).listener_config()

    assert config == ListenerConfig(
        host="127.0.0.1",
        port=8181,
        read_timeout=5.0,
        write_timeout=10.0,
        idle_timeout=60.0,
        shutdown_grace_period=5.0,
    )
    assert config.address == "127.0.0.1:8181"
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.port = 1


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
