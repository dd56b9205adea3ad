# chatrelay/api/routes/metrics.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from chatrelay.core.state import RelayState, get_relay_state

router = APIRouter()


@router.get("/metrics")
async def get_metrics(relay: RelayState = Depends(get_relay_state)):
    """
    Traffic and capacity metrics.

    Returns:
        dict: Message statistics (total, per second, daily projection) and
              capacity (connections, known rooms, rooms with members)

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 2.5,
            "messages_per_second": 0.13,
            "daily_messages_projected": 11520,
            "concurrent_connections": 14,
            "total_rooms": 3,
            "active_rooms_with_members": 2
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - relay.app_start_time).total_seconds()
    total_messages = relay.message_counter

    if uptime_seconds > 0:
        messages_per_second = total_messages / uptime_seconds
        daily_messages = int(messages_per_second * 86400)
    else:
        messages_per_second = 0
        daily_messages = 0

    return {
        # Statistics
        "total_messages": total_messages,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "daily_messages_projected": daily_messages,

        # Capacity
        "concurrent_connections": relay.connection_manager.connection_count(),
        "total_rooms": len(relay.room_manager.list_rooms()),
        "active_rooms_with_members": relay.connection_manager.active_room_count(),
    }
