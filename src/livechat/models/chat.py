from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class UserRole(str, Enum):
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class ChatStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class SenderType(str, Enum):
    CUSTOMER = "customer"
    AGENT = "agent"


class CurrentUser(BaseModel):
    """Identity taken from a verified token"""
    id: str
    username: str
    role: UserRole
    email: Optional[str] = None

    @property
    def sender_type(self) -> SenderType:
        return (
            SenderType.AGENT
            if self.role == UserRole.AGENT
            else SenderType.CUSTOMER
        )


class ChatRecord(BaseModel):
    """A support request, from queueing to the end of the conversation"""
    id: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    status: ChatStatus = ChatStatus.PENDING
    subject: str
    rating: Optional[int] = None
    rating_comment: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ChatRecord":
        data = {k: v for k, v in doc.items() if k != "_id"}
        return cls(id=str(doc["_id"]), **data)

    def is_participant(self, user: CurrentUser) -> bool:
        return user.id in (self.customer_id, self.agent_id)

    def can_view(self, user: CurrentUser) -> bool:
        return self.is_participant(user) or user.role == UserRole.ADMIN


class MessageRecord(BaseModel):
    """A single line of conversation inside a chat"""
    id: str
    chat_id: str
    sender_name: str
    sender_type: SenderType
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "MessageRecord":
        data = {k: v for k, v in doc.items() if k != "_id"}
        return cls(id=str(doc["_id"]), **data)
