"""
hello_service/core/config.py
Configuration management using Pydantic Settings
"""

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .. import __version__


# ============================================================================
# Listener Configuration
# ============================================================================

@dataclass(frozen=True)
class ListenerConfig:
    """
    Immutable listener configuration handed to the server lifecycle.

    All durations are in seconds.
    """
    host: str
    port: int
    read_timeout: float
    write_timeout: float
    idle_timeout: float
    shutdown_grace_period: float

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class Settings(BaseSettings):
    """
    Hello Service Configuration
    Environment variables can override these defaults
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    APP_NAME: str = "hello-service"
    APP_VERSION: str = __version__
    GREETING_MESSAGE: str = "Hello from Dominic Ifechuku"

    # ========================================================================
    # Listener Settings
    # ========================================================================
    API_HOST: str = "0.0.0.0"
    API_PORT: int = Field(default=8080, ge=0, le=65535)

    # Per-connection timeouts (seconds)
    READ_TIMEOUT: float = Field(default=5.0, gt=0)
    WRITE_TIMEOUT: float = Field(default=10.0, gt=0)
    IDLE_TIMEOUT: float = Field(default=60.0, gt=0)

    # Time in-flight requests get to finish once shutdown starts
    SHUTDOWN_GRACE_PERIOD: float = Field(default=5.0, gt=0)

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # ========================================================================
    # Validators
    # ========================================================================

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names from the environment"""
        if isinstance(v, str):
            return v.upper()
        return v

    # ========================================================================
    # Properties
    # ========================================================================

    def listener_config(self) -> ListenerConfig:
        """Freeze the listener-related settings into a ListenerConfig"""
        return ListenerConfig(
            host=self.API_HOST,
            port=self.API_PORT,
            read_timeout=self.READ_TIMEOUT,
            write_timeout=self.WRITE_TIMEOUT,
            idle_timeout=self.IDLE_TIMEOUT,
            shutdown_grace_period=self.SHUTDOWN_GRACE_PERIOD,
        )


# ============================================================================
# Singleton Pattern - Global Settings Instance
# ============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create settings instance (Singleton)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Drop the cached settings so the next get_settings() re-reads the
    environment (for testing).
    """
    global _settings
    _settings = None


# ============================================================================
# Export
# ============================================================================

__all__ = ["ListenerConfig", "Settings", "get_settings", "reset_settings"]
