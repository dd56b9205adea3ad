# chatrelay/models/models.py
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A relayed chat message. Snapshots the author's name and avatar at send time."""

    model_config = ConfigDict(frozen=True)

    name: str
    text: str
    time: int
    avatar: Optional[str] = None


class SystemEvent(BaseModel):
    """Presence notice sent to a room when someone joins or leaves it."""

    type: Literal["joined", "left"]
    text: str
    online: int
    time: int


class TypingEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    is_typing: bool = Field(alias="isTyping")


class RoomInfo(BaseModel):
    room: str
    online: int = 0


class HealthStatus(BaseModel):
    status: str = "healthy"
    connections: int
    rooms: int
    active_rooms_with_members: int


RoomDirectory = Dict[str, int]
