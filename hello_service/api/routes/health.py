"""Health check endpoint for liveness probes."""
from fastapi import APIRouter

from ...schemas.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    """
    Returns 200 with {"status": "ok"} while the process is serving.

    Does not inspect any dependency; there are none.
    """
    return HealthResponse()
