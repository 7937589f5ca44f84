"""
hello_service/core/exceptions.py
Custom exceptions for the hello service lifecycle
"""

from typing import Optional


class HelloServiceException(Exception):
    """Base exception for all hello service errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/response"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ============================================================================
# Listener Exceptions
# ============================================================================

class BindError(HelloServiceException):
    """The configured address could not be bound"""

    def __init__(self, address: str, reason: str):
        super().__init__(
            message=f"Could not bind listener on {address}: {reason}",
            error_code="BIND_FAILED",
            details={"address": address, "reason": reason}
        )


class ServerStartupError(HelloServiceException):
    """The listener task stopped before it began accepting connections"""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Server failed to start: {reason}",
            error_code="STARTUP_FAILED",
            details={"reason": reason}
        )


# ============================================================================
# Shutdown Exceptions
# ============================================================================

class ShutdownTimeoutError(HelloServiceException):
    """In-flight requests did not finish within the grace period"""

    def __init__(self, grace_period: float, pending: int):
        super().__init__(
            message=(
                f"Graceful shutdown exceeded {grace_period:g}s grace period "
                f"with {pending} request(s) still in flight"
            ),
            error_code="SHUTDOWN_TIMEOUT",
            details={"grace_period": grace_period, "pending": pending}
        )


__all__ = [
    "HelloServiceException",
    "BindError",
    "ServerStartupError",
    "ShutdownTimeoutError",
]
