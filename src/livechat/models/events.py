from enum import Enum
from pydantic import BaseModel
from typing import Optional, Dict, Any


class ClientEvent(str, Enum):
    """Events a websocket client may send"""
    JOIN_CHAT = "join_chat"
    LEAVE_CHAT = "leave_chat"
    SEND_MESSAGE = "send_message"
    ACCEPT_CHAT = "accept_chat"
    END_CHAT = "end_chat"
    TYPING = "typing"
    STOP_TYPING = "stop_typing"
    NEW_CHAT_CREATED = "new_chat_created"


class ServerEvent(str, Enum):
    """Events the server pushes to websocket clients"""
    JOINED_CHAT = "joined_chat"
    NEW_MESSAGE = "new_message"
    CHAT_ACCEPTED = "chat_accepted"
    CHAT_ACCEPTED_SUCCESS = "chat_accepted_success"
    CHAT_TAKEN = "chat_taken"
    CHAT_ENDED = "chat_ended"
    USER_TYPING = "user_typing"
    NEW_PENDING_CHAT = "new_pending_chat"
    AGENT_ONLINE = "agent_online"
    AGENT_OFFLINE = "agent_offline"
    ERROR = "error"


class WSInbound(BaseModel):
    """Frame received from a client. Extra keys are kept for relays."""
    model_config = {"extra": "allow"}

    type: str
    chat_id: Optional[str] = None
    content: Optional[str] = None


class WSFrame(BaseModel):
    """Frame sent to clients"""
    type: ServerEvent
    data: Dict[str, Any] = {}
