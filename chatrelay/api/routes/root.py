# chatrelay/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the relay and where to find it.
    """
    return {
        "message": "Chat Relay - room-scoped real-time chat",
        "version": "1.0",
        "features": ["rooms", "history", "presence", "typing", "room_switching"],
        "endpoints": {
            "websocket": "/ws",
            "room": "/api/room/{room}",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
