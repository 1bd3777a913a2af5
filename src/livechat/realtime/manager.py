from fastapi import WebSocket
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
from starlette.websockets import WebSocketState
from src.livechat.models.chat import CurrentUser, UserRole
from src.livechat.models.events import ServerEvent, WSFrame

logger = logging.getLogger(__name__)

AGENTS_ROOM = "agents"
ADMINS_ROOM = "admins"


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


def chat_room(chat_id: str) -> str:
    return f"chat_{chat_id}"


@dataclass
class ConnectedUser:
    user_id: str
    name: str
    role: UserRole
    sockets: List[WebSocket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "role": self.role.value,
            "connections": len(self.sockets),
        }


class ConnectionManager:
    """Presence registry plus named rooms of websockets.

    Structure:
        rooms: {room_name: {websocket, ...}}
        presence: {user_id: ConnectedUser}
    """

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.presence: Dict[str, ConnectedUser] = {}

    def connect(self, websocket: WebSocket, user: CurrentUser) -> bool:
        """Register a socket for a user.

        Returns True if this is the user's first open socket.
        """
        entry = self.presence.get(user.id)
        first = entry is None
        if first:
            entry = ConnectedUser(user.id, user.username, user.role)
            self.presence[user.id] = entry
        entry.sockets.append(websocket)
        return first

    def disconnect(self, websocket: WebSocket, user_id: str) -> bool:
        """Drop a socket from presence and every room.

        Returns True if the user has no sockets left.
        """
        self._drop(websocket)
        entry = self.presence.get(user_id)
        if entry is None:
            return False
        if websocket in entry.sockets:
            entry.sockets.remove(websocket)
        if not entry.sockets:
            del self.presence[user_id]
            return True
        return False

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if not members:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]

    def members(self, room: str) -> Set[WebSocket]:
        return set(self.rooms.get(room, ()))

    async def emit(
        self,
        websocket: WebSocket,
        event: ServerEvent,
        data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Send one frame to one socket; no acknowledgement or retry."""
        frame = WSFrame(type=event, data=data or {}).model_dump(mode="json")
        try:
            if websocket.client_state == WebSocketState.CONNECTED:
                await websocket.send_json(frame)
                return True
        except Exception as e:
            logger.error(f"Error sending {event.value}: {e}")
        self._drop(websocket)
        return False

    async def emit_to_room(
        self,
        room: str,
        event: ServerEvent,
        data: Optional[Dict[str, Any]] = None,
        exclude: Optional[WebSocket] = None
    ) -> int:
        """Send a frame to every member of a room. Returns delivered count."""
        delivered = 0
        for websocket in self.members(room):
            if websocket is exclude:
                continue
            if await self.emit(websocket, event, data):
                delivered += 1
        return delivered

    def _drop(self, websocket: WebSocket) -> None:
        """Forget a dead socket everywhere except presence."""
        for room in list(self.rooms):
            self.leave(websocket, room)

    def get_connected_users(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.presence.values()]

    def get_online_agents(self) -> List[Dict[str, Any]]:
        return [
            entry.to_dict()
            for entry in self.presence.values()
            if entry.role == UserRole.AGENT
        ]
