"""Lifecycle states for the HTTP listener."""
from enum import Enum


class LifecycleState(Enum):
    """
    States of the server lifecycle, in the only order they can occur.

    CREATED -> RUNNING -> SHUTTING_DOWN -> TERMINATED
    """
    CREATED = "created"              # Constructed, nothing bound yet
    RUNNING = "running"              # Listener bound and accepting
    SHUTTING_DOWN = "shutting_down"  # Draining in-flight requests
    TERMINATED = "terminated"        # Listener closed, connections gone
