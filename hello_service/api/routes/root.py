"""Root greeting endpoint."""
from fastapi import APIRouter, Request

from ...schemas.responses import MessageResponse

router = APIRouter()


@router.get("/", response_model=MessageResponse, summary="Service greeting")
async def root(request: Request) -> MessageResponse:
    """
    Fixed greeting written to the response body.

    The message comes from the settings the application was built with.
    """
    return MessageResponse(message=request.app.state.settings.GREETING_MESSAGE)
