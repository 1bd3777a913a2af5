from pydantic import BaseModel, Field, field_validator
from src.livechat.models.chat import ChatRecord, MessageRecord, UserRole
from typing import List, Optional


class CreateChatRequest(BaseModel):
    """Request model for a customer opening a support chat"""
    subject: str

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Subject is required")
        return value


class RateChatRequest(BaseModel):
    """Request model for rating an ended chat"""
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    role: UserRole


class ChatMessagesResponse(BaseModel):
    """Chat together with its full message history"""
    chat: ChatRecord
    messages: List[MessageRecord]


class PendingChatsResponse(BaseModel):
    chats: List[ChatRecord]


class AdminStats(BaseModel):
    total_agents: int
    total_users: int
    total_chats: int
    avg_rating: float
    pending_chats: int
    active_chats: int
    ended_chats: int
    online_agents: int


class AgentStats(BaseModel):
    my_chats_today: int
    my_active_chats: int
    my_total_chats: int
    my_avg_rating: float
    pending_chats: int


class UserStats(BaseModel):
    my_total_chats: int
    my_active_chats: int
    my_pending_chats: int
    my_ended_chats: int
    my_avg_rating: float
