import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from src.livechat.chat.exceptions import (
    ChatClosedError,
    ChatNotAvailableError,
    ChatNotFoundError,
    InvalidRequestError,
)
from src.livechat.models.chat import (
    ChatRecord,
    ChatStatus,
    CurrentUser,
    MessageRecord,
    SenderType,
)


logger = logging.getLogger(__name__)


class ChatStore:
    """Persistence for support chats and their messages.

    The pending queue is every chat document whose status is ``pending``,
    read oldest first. Agent assignment is one conditional write on the
    chat document, so a second agent accepting the same chat gets
    ``ChatNotAvailableError`` instead of silently overwriting the first.
    """

    def __init__(self, chat_collection, message_collection):
        self.chats = chat_collection
        self.messages = message_collection

    @staticmethod
    def _object_id(chat_id: str) -> ObjectId:
        try:
            return ObjectId(chat_id)
        except (InvalidId, TypeError):
            raise ChatNotFoundError()

    async def create_chat(
        self, customer: CurrentUser, subject: str
    ) -> ChatRecord:
        subject = (subject or "").strip()
        if not subject:
            raise InvalidRequestError("Subject is required")
        now = datetime.now()
        document = {
            "customer_id": customer.id,
            "customer_name": customer.username,
            "agent_id": None,
            "agent_name": None,
            "status": ChatStatus.PENDING.value,
            "subject": subject,
            "rating": None,
            "rating_comment": None,
            "started_at": None,
            "ended_at": None,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.chats.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info(f"Created chat {result.inserted_id} for {customer.username}")
        return ChatRecord.from_document(document)

    async def get_chat(self, chat_id: str) -> ChatRecord:
        doc = await self.chats.find_one({"_id": self._object_id(chat_id)})
        if doc is None:
            raise ChatNotFoundError()
        return ChatRecord.from_document(doc)

    async def list_pending(self) -> List[ChatRecord]:
        """Return the queue, oldest request first."""
        cursor = self.chats.find(
            {"status": ChatStatus.PENDING.value}
        ).sort("created_at", ASCENDING)
        docs = await cursor.to_list(length=None)
        return [ChatRecord.from_document(doc) for doc in docs]

    async def assign_agent(
        self, chat_id: str, agent: CurrentUser
    ) -> ChatRecord:
        now = datetime.now()
        doc = await self.chats.find_one_and_update(
            {
                "_id": self._object_id(chat_id),
                "status": ChatStatus.PENDING.value,
            },
            {
                "$set": {
                    "agent_id": agent.id,
                    "agent_name": agent.username,
                    "status": ChatStatus.ACTIVE.value,
                    "started_at": now,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise ChatNotAvailableError()
        return ChatRecord.from_document(doc)

    async def end_chat(self, chat_id: str) -> ChatRecord:
        now = datetime.now()
        doc = await self.chats.find_one_and_update(
            {
                "_id": self._object_id(chat_id),
                "status": {"$ne": ChatStatus.ENDED.value},
            },
            {
                "$set": {
                    "status": ChatStatus.ENDED.value,
                    "ended_at": now,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            # Distinguish a missing chat from one that already ended
            await self.get_chat(chat_id)
            raise ChatClosedError()
        return ChatRecord.from_document(doc)

    async def rate_chat(
        self, chat_id: str, rating: int, comment: Optional[str] = None
    ) -> ChatRecord:
        doc = await self.chats.find_one_and_update(
            {"_id": self._object_id(chat_id)},
            {
                "$set": {
                    "rating": rating,
                    "rating_comment": comment,
                    "updated_at": datetime.now(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise ChatNotFoundError()
        return ChatRecord.from_document(doc)

    async def add_message(
        self,
        chat_id: str,
        sender_name: str,
        sender_type: SenderType,
        content: str
    ) -> MessageRecord:
        content = (content or "").strip()
        if not content:
            raise InvalidRequestError("Message content is required")
        now = datetime.now()
        document = {
            "chat_id": chat_id,
            "sender_name": sender_name.strip(),
            "sender_type": SenderType(sender_type).value,
            "content": content,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.messages.insert_one(document)
        document["_id"] = result.inserted_id
        return MessageRecord.from_document(document)

    async def get_messages(self, chat_id: str) -> List[MessageRecord]:
        cursor = self.messages.find(
            {"chat_id": chat_id}
        ).sort("created_at", ASCENDING)
        docs = await cursor.to_list(length=None)
        return [MessageRecord.from_document(doc) for doc in docs]

    async def recent_chats_for_customer(
        self, customer_id: str, limit: int = 10
    ) -> List[ChatRecord]:
        cursor = self.chats.find(
            {"customer_id": customer_id}
        ).sort("created_at", DESCENDING).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [ChatRecord.from_document(doc) for doc in docs]

    async def count_chats(self, query: Optional[Dict[str, Any]] = None) -> int:
        return await self.chats.count_documents(query or {})

    async def average_rating(
        self, query: Optional[Dict[str, Any]] = None
    ) -> float:
        """Mean rating over matching chats, 0 when none has been rated."""
        match = dict(query or {})
        match["rating"] = {"$ne": None}
        cursor = self.chats.aggregate([
            {"$match": match},
            {"$group": {"_id": None, "avg_rating": {"$avg": "$rating"}}},
        ])
        result = await cursor.to_list(length=1)
        if not result or result[0].get("avg_rating") is None:
            return 0.0
        return float(result[0]["avg_rating"])
