from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ..room_manager import RoomManager
from ..schemas import RoomSummary

router = APIRouter(prefix="/api", tags=["rooms"])


def get_room_manager(request: Request) -> RoomManager:
    return request.app.state.room_manager


@router.get("/rooms/{pin}", response_model=RoomSummary)
async def get_room(pin: str, request: Request):
    """Public view of a join code: whether it is live and can still be joined."""
    summary = get_room_manager(request).summary(pin)
    if summary is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return summary
