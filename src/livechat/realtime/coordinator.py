"""Realtime chat coordination: presence, the agent queue and chat rooms.

Every socket joins its user's personal room. Agents also join the shared
``agents`` room, where new pending chats and "chat taken" notices are
broadcast. Participants of a conversation share a ``chat_<id>`` room that
carries messages, typing indicators and lifecycle events. Delivery is
fire-and-forget: frames are emitted once with no acknowledgement.
"""
import logging
from typing import Any, Dict, Optional
from fastapi import WebSocket
from pydantic import ValidationError
from src.livechat.chat.chat_store import ChatStore
from src.livechat.chat.exceptions import (
    ChatClosedError,
    InvalidRequestError,
    LiveChatError,
    PermissionDeniedError,
)
from src.livechat.chat.user_directory import UserDirectory
from src.livechat.models.chat import (
    ChatRecord,
    ChatStatus,
    CurrentUser,
    UserRole,
)
from src.livechat.models.events import ClientEvent, ServerEvent, WSInbound
from src.livechat.realtime.manager import (
    ADMINS_ROOM,
    AGENTS_ROOM,
    ConnectionManager,
    chat_room,
    user_room,
)

logger = logging.getLogger(__name__)

# Sent when an unexpected error hides the real cause from the client
FAILURE_MESSAGES = {
    ClientEvent.SEND_MESSAGE: "Failed to send message",
    ClientEvent.ACCEPT_CHAT: "Failed to accept chat",
    ClientEvent.END_CHAT: "Failed to end chat",
    ClientEvent.JOIN_CHAT: "Failed to join chat",
}


def chat_summary(chat: ChatRecord) -> Dict[str, Any]:
    """Payload describing a chat in queue and acceptance events."""
    return {
        "id": chat.id,
        "chat_id": chat.id,
        "subject": chat.subject,
        "customer_id": chat.customer_id,
        "customer_name": chat.customer_name,
        "agent_name": chat.agent_name,
        "status": chat.status.value,
        "created_at": chat.created_at.isoformat(),
        "started_at": (
            chat.started_at.isoformat() if chat.started_at else None
        ),
    }


class ChatCoordinator:
    def __init__(
        self,
        chat_store: ChatStore,
        user_directory: UserDirectory,
        connections: ConnectionManager
    ):
        self.chat_store = chat_store
        self.user_directory = user_directory
        self.connections = connections
        self._handlers = {
            ClientEvent.JOIN_CHAT: self.join_chat,
            ClientEvent.LEAVE_CHAT: self.leave_chat,
            ClientEvent.SEND_MESSAGE: self.send_message,
            ClientEvent.ACCEPT_CHAT: self.accept_chat,
            ClientEvent.END_CHAT: self.end_chat,
            ClientEvent.TYPING: self.typing,
            ClientEvent.STOP_TYPING: self.stop_typing,
            ClientEvent.NEW_CHAT_CREATED: self.relay_new_chat,
        }

    # Connection lifecycle

    async def on_connect(self, websocket: WebSocket, user: CurrentUser):
        await self.user_directory.sync(user)
        first = self.connections.connect(websocket, user)
        self.connections.join(websocket, user_room(user.id))
        logger.info(f"User connected: {user.username} ({user.role.value})")

        if user.role == UserRole.AGENT:
            self.connections.join(websocket, AGENTS_ROOM)
            if first:
                await self.connections.emit_to_room(
                    AGENTS_ROOM,
                    ServerEvent.AGENT_ONLINE,
                    {"agent_id": user.id, "agent_name": user.username},
                    exclude=websocket,
                )
        elif user.role == UserRole.ADMIN:
            self.connections.join(websocket, ADMINS_ROOM)

    async def on_disconnect(self, websocket: WebSocket, user: CurrentUser):
        last = self.connections.disconnect(websocket, user.id)
        logger.info(f"User disconnected: {user.username}")
        if last and user.role == UserRole.AGENT:
            await self.connections.emit_to_room(
                AGENTS_ROOM,
                ServerEvent.AGENT_OFFLINE,
                {"agent_id": user.id, "agent_name": user.username},
            )

    async def handle_event(
        self, websocket: WebSocket, user: CurrentUser, payload: Dict
    ) -> None:
        """Dispatch one inbound frame; failures go back as ``error`` events."""
        try:
            message = WSInbound.model_validate(payload)
        except ValidationError:
            await self._error(websocket, "Malformed event")
            return
        try:
            event = ClientEvent(message.type)
        except ValueError:
            await self._error(websocket, f"Unknown event: {message.type}")
            return

        try:
            await self._handlers[event](websocket, user, message)
        except LiveChatError as e:
            await self._error(websocket, e.message)
        except Exception as e:
            logger.error(f"Error handling {event.value}: {e}", exc_info=True)
            await self._error(
                websocket, FAILURE_MESSAGES.get(event, "Server error")
            )

    async def _error(self, websocket: WebSocket, message: str) -> None:
        await self.connections.emit(
            websocket, ServerEvent.ERROR, {"message": message}
        )

    @staticmethod
    def _require_chat_id(message: WSInbound) -> str:
        if not message.chat_id:
            raise InvalidRequestError("chat_id is required")
        return message.chat_id

    # Inbound events

    async def join_chat(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        chat = await self.chat_store.get_chat(self._require_chat_id(message))
        if not chat.can_view(user):
            raise PermissionDeniedError()
        self.connections.join(websocket, chat_room(chat.id))
        await self.connections.emit(
            websocket, ServerEvent.JOINED_CHAT, {"chat_id": chat.id}
        )
        logger.info(f"{user.username} joined chat {chat.id}")

    async def leave_chat(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        chat_id = self._require_chat_id(message)
        self.connections.leave(websocket, chat_room(chat_id))
        logger.info(f"{user.username} left chat {chat_id}")

    async def send_message(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        chat = await self.chat_store.get_chat(self._require_chat_id(message))
        if chat.status == ChatStatus.ENDED:
            raise ChatClosedError("Chat has ended")
        if not chat.is_participant(user):
            raise PermissionDeniedError("Not a participant of this chat")

        saved = await self.chat_store.add_message(
            chat.id, user.username, user.sender_type, message.content
        )
        await self.connections.emit_to_room(
            chat_room(chat.id),
            ServerEvent.NEW_MESSAGE,
            saved.model_dump(mode="json"),
        )

    async def accept_chat(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        if user.role != UserRole.AGENT:
            raise PermissionDeniedError("Only agents can accept chats")
        chat = await self.chat_store.assign_agent(
            self._require_chat_id(message), user
        )
        room = chat_room(chat.id)
        self.connections.join(websocket, room)

        await self.connections.emit_to_room(
            room,
            ServerEvent.CHAT_ACCEPTED,
            {
                "chat_id": chat.id,
                "agent_name": user.username,
                "message": f"{user.username} has joined the chat",
            },
            exclude=websocket,
        )
        await self.connections.emit_to_room(
            AGENTS_ROOM,
            ServerEvent.CHAT_TAKEN,
            {"chat_id": chat.id},
            exclude=websocket,
        )
        await self.connections.emit(
            websocket,
            ServerEvent.CHAT_ACCEPTED_SUCCESS,
            {"chat_id": chat.id, "chat": chat_summary(chat)},
        )
        logger.info(f"Agent {user.username} accepted chat {chat.id}")

    async def end_chat(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        chat = await self.chat_store.get_chat(self._require_chat_id(message))
        if not chat.is_participant(user):
            raise PermissionDeniedError("Unauthorized to end this chat")
        chat = await self.chat_store.end_chat(chat.id)
        await self.connections.emit_to_room(
            chat_room(chat.id),
            ServerEvent.CHAT_ENDED,
            {
                "chat_id": chat.id,
                "ended_by": user.username,
                "message": "Chat has been ended",
            },
        )
        logger.info(f"{user.username} ended chat {chat.id}")

    async def _typing(
        self,
        websocket: WebSocket,
        user: CurrentUser,
        message: WSInbound,
        is_typing: bool
    ) -> None:
        chat_id = self._require_chat_id(message)
        room = chat_room(chat_id)
        # only sockets already in the room may signal typing
        if websocket not in self.connections.members(room):
            return
        await self.connections.emit_to_room(
            room,
            ServerEvent.USER_TYPING,
            {
                "chat_id": chat_id,
                "user_name": user.username,
                "is_typing": is_typing,
            },
            exclude=websocket,
        )

    async def typing(self, websocket, user, message) -> None:
        await self._typing(websocket, user, message, True)

    async def stop_typing(self, websocket, user, message) -> None:
        await self._typing(websocket, user, message, False)

    async def relay_new_chat(
        self, websocket: WebSocket, user: CurrentUser, message: WSInbound
    ) -> None:
        data = message.model_dump(exclude={"type"}, exclude_none=True)
        await self.connections.emit_to_room(
            AGENTS_ROOM, ServerEvent.NEW_PENDING_CHAT, data, exclude=websocket
        )

    # Server-side notifications used by the REST routers

    async def notify_new_chat(self, chat: ChatRecord) -> int:
        return await self.notify_agents(
            ServerEvent.NEW_PENDING_CHAT, chat_summary(chat)
        )

    async def notify_agents(
        self, event: ServerEvent, data: Optional[Dict[str, Any]] = None
    ) -> int:
        return await self.connections.emit_to_room(AGENTS_ROOM, event, data)

    async def notify_user(
        self,
        user_id: str,
        event: ServerEvent,
        data: Optional[Dict[str, Any]] = None
    ) -> int:
        return await self.connections.emit_to_room(
            user_room(user_id), event, data
        )

    async def notify_chat(
        self,
        chat_id: str,
        event: ServerEvent,
        data: Optional[Dict[str, Any]] = None
    ) -> int:
        return await self.connections.emit_to_room(
            chat_room(chat_id), event, data
        )
