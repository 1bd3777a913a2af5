"""
Unit tests for ChatStore: the pending queue, assignment and message history.
"""

import pytest
from datetime import datetime, timedelta

from src.livechat.chat.exceptions import (
    ChatClosedError,
    ChatNotAvailableError,
    ChatNotFoundError,
    InvalidRequestError,
)
from src.livechat.models.chat import ChatStatus, SenderType


class TestChatStore:

    @pytest.fixture
    def store(self, services):
        return services.chat_store

    @pytest.mark.asyncio
    async def test_create_chat_is_pending_with_trimmed_subject(
        self, store, customer
    ):
        chat = await store.create_chat(customer, "  Billing question  ")

        assert chat.status == ChatStatus.PENDING
        assert chat.subject == "Billing question"
        assert chat.customer_id == customer.id
        assert chat.customer_name == "alice"
        assert chat.agent_id is None
        assert chat.started_at is None

    @pytest.mark.asyncio
    async def test_create_chat_rejects_blank_subject(self, store, customer):
        with pytest.raises(InvalidRequestError):
            await store.create_chat(customer, "   ")

    @pytest.mark.asyncio
    async def test_get_chat_with_malformed_id_is_not_found(self, store):
        with pytest.raises(ChatNotFoundError):
            await store.get_chat("not-an-object-id")

    @pytest.mark.asyncio
    async def test_get_chat_unknown_id_is_not_found(self, store):
        with pytest.raises(ChatNotFoundError):
            await store.get_chat("64b7f0c2a1b2c3d4e5f60718")

    @pytest.mark.asyncio
    async def test_pending_queue_is_oldest_first_and_excludes_assigned(
        self, store, customer, other_customer, agent
    ):
        first = await store.create_chat(customer, "first")
        second = await store.create_chat(other_customer, "second")
        third = await store.create_chat(customer, "third")
        # Make creation order unambiguous
        store.chats.documents[0]["created_at"] = datetime.now() - timedelta(minutes=3)
        store.chats.documents[1]["created_at"] = datetime.now() - timedelta(minutes=2)
        store.chats.documents[2]["created_at"] = datetime.now() - timedelta(minutes=1)

        await store.assign_agent(second.id, agent)
        queue = await store.list_pending()

        assert [chat.id for chat in queue] == [first.id, third.id]

    @pytest.mark.asyncio
    async def test_assign_agent_activates_chat(self, store, customer, agent):
        chat = await store.create_chat(customer, "help")

        assigned = await store.assign_agent(chat.id, agent)

        assert assigned.status == ChatStatus.ACTIVE
        assert assigned.agent_id == agent.id
        assert assigned.agent_name == agent.username
        assert assigned.started_at is not None

    @pytest.mark.asyncio
    async def test_second_accept_is_rejected(
        self, store, customer, agent, other_agent
    ):
        chat = await store.create_chat(customer, "help")
        await store.assign_agent(chat.id, agent)

        with pytest.raises(ChatNotAvailableError):
            await store.assign_agent(chat.id, other_agent)

        stored = await store.get_chat(chat.id)
        assert stored.agent_id == agent.id

    @pytest.mark.asyncio
    async def test_assign_unknown_chat_is_not_available(self, store, agent):
        with pytest.raises(ChatNotAvailableError):
            await store.assign_agent("64b7f0c2a1b2c3d4e5f60718", agent)

    @pytest.mark.asyncio
    async def test_end_chat_sets_ended_at_and_only_once(
        self, store, customer
    ):
        chat = await store.create_chat(customer, "help")

        ended = await store.end_chat(chat.id)
        assert ended.status == ChatStatus.ENDED
        assert ended.ended_at is not None

        with pytest.raises(ChatClosedError):
            await store.end_chat(chat.id)

    @pytest.mark.asyncio
    async def test_end_unknown_chat_is_not_found(self, store):
        with pytest.raises(ChatNotFoundError):
            await store.end_chat("64b7f0c2a1b2c3d4e5f60718")

    @pytest.mark.asyncio
    async def test_messages_are_returned_in_order(self, store, customer):
        chat = await store.create_chat(customer, "help")
        await store.add_message(chat.id, "alice", SenderType.CUSTOMER, " hi ")
        await store.add_message(chat.id, "carol", SenderType.AGENT, "hello")
        other = await store.create_chat(customer, "other")
        await store.add_message(other.id, "alice", SenderType.CUSTOMER, "x")

        messages = await store.get_messages(chat.id)

        assert [m.content for m in messages] == ["hi", "hello"]
        assert [m.sender_type for m in messages] == [
            SenderType.CUSTOMER, SenderType.AGENT
        ]

    @pytest.mark.asyncio
    async def test_empty_message_is_rejected(self, store, customer):
        chat = await store.create_chat(customer, "help")
        with pytest.raises(InvalidRequestError):
            await store.add_message(chat.id, "alice", SenderType.CUSTOMER, "  ")

    @pytest.mark.asyncio
    async def test_average_rating_ignores_unrated_chats(self, store, customer):
        assert await store.average_rating() == 0.0

        rated = []
        for subject in ("a", "b", "c"):
            rated.append(await store.create_chat(customer, subject))
        await store.rate_chat(rated[0].id, 5)
        await store.rate_chat(rated[1].id, 2)

        assert await store.average_rating() == pytest.approx(3.5)
        assert await store.average_rating({"customer_id": "nobody"}) == 0.0

    @pytest.mark.asyncio
    async def test_recent_chats_newest_first_and_limited(
        self, store, customer
    ):
        for index in range(4):
            await store.create_chat(customer, f"chat {index}")
        for index, document in enumerate(store.chats.documents):
            document["created_at"] = datetime.now() - timedelta(minutes=10 - index)

        recent = await store.recent_chats_for_customer(customer.id, limit=2)

        assert [chat.subject for chat in recent] == ["chat 3", "chat 2"]
