"""Command bus route."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from app.services.commands import CommandBus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commands", tags=["commands"])


def get_bus(request: Request) -> CommandBus:
    """Command bus built at startup."""
    return request.app.state.bus


@router.post("")
async def dispatch_command(
    message: Dict[str, Any] = Body(...),
    bus: CommandBus = Depends(get_bus),
):
    """
    Dispatch one command message.

    Args:
        message: Message with a `type` tag and command fields
        bus: Command bus

    Returns:
        The command's response, or null for unrecognized commands
    """
    result = await bus.dispatch(message)
    if result is None:
        return None
    return result.to_wire()
