# chatrelay/api/routes/rooms.py

from fastapi import APIRouter, Depends

from chatrelay.core.state import RelayState, get_relay_state
from chatrelay.models.models import RoomDirectory, RoomInfo

router = APIRouter(prefix="/api")

# ============================================================================
# READ-ONLY ROOM ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=RoomDirectory)
async def list_rooms(relay: RelayState = Depends(get_relay_state)):
    """
    Occupancy of every known room, same mapping the ``roomList`` event carries.
    """
    return relay.connection_manager.directory()


@router.get("/room/{room}", response_model=RoomInfo)
async def get_room(room: str, relay: RelayState = Depends(get_relay_state)):
    """
    Current occupancy of a single room.

    The name goes through the same normalization as a join, so "General "
    and "general" answer for the same room. Unknown rooms report 0 online.

    Returns:
        RoomInfo: {"room": <normalized name>, "online": <member count>}
    """
    return relay.connection_manager.room_info(room)
