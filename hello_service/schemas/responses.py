"""Response bodies for the fixed JSON endpoints."""
from typing import Literal

from .base import BaseModel


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


__all__ = ["MessageResponse", "HealthResponse"]
