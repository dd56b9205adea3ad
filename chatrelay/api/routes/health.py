# chatrelay/api/routes/health.py

from fastapi import APIRouter, Depends

from chatrelay.core.state import RelayState, get_relay_state
from chatrelay.models.models import HealthStatus

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health(relay: RelayState = Depends(get_relay_state)):
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.
    Used by container health probes and monitoring.

    Returns:
        HealthStatus: Status, connection count, room count, active room count
    """
    return HealthStatus(
        connections=relay.connection_manager.connection_count(),
        rooms=len(relay.room_manager.list_rooms()),
        active_rooms_with_members=relay.connection_manager.active_room_count(),
    )
