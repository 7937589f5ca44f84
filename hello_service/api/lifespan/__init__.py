"""
Listener lifecycle management: bind, serve, wait for a termination signal,
drain in-flight requests within a grace period.
"""

from .base import LifecycleState
from .connections import InFlightMiddleware, InFlightTracker, TimeoutMiddleware
from .manager import lifespan
from .server import ServerLifecycle
from .signals import TerminationSignals


__all__ = [
    "lifespan",
    "LifecycleState",
    "ServerLifecycle",
    "TerminationSignals",
    "InFlightTracker",
    "InFlightMiddleware",
    "TimeoutMiddleware",
]
