from datetime import datetime, timedelta
from typing import List
from src.livechat.chat.chat_store import ChatStore
from src.livechat.chat.user_directory import UserDirectory
from src.livechat.models.api import AdminStats, AgentStats, UserStats
from src.livechat.models.chat import ChatRecord, ChatStatus, UserRole
from src.livechat.realtime.manager import ConnectionManager


class StatsService:
    """Dashboard numbers for each role."""

    def __init__(
        self,
        chat_store: ChatStore,
        user_directory: UserDirectory,
        connections: ConnectionManager,
        recent_chats_limit: int = 10
    ):
        self.chat_store = chat_store
        self.user_directory = user_directory
        self.connections = connections
        self.recent_chats_limit = recent_chats_limit

    async def _status_counts(self, base_query: dict) -> dict:
        return {
            status: await self.chat_store.count_chats(
                {**base_query, "status": status.value}
            )
            for status in ChatStatus
        }

    async def admin_stats(self) -> AdminStats:
        counts = await self._status_counts({})
        return AdminStats(
            total_agents=await self.user_directory.count_by_role(
                UserRole.AGENT
            ),
            total_users=await self.user_directory.count_by_role(UserRole.USER),
            total_chats=await self.chat_store.count_chats(),
            avg_rating=await self.chat_store.average_rating(),
            pending_chats=counts[ChatStatus.PENDING],
            active_chats=counts[ChatStatus.ACTIVE],
            ended_chats=counts[ChatStatus.ENDED],
            online_agents=len(self.connections.get_online_agents()),
        )

    async def agent_stats(self, agent_id: str) -> AgentStats:
        today = datetime.now().replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        tomorrow = today + timedelta(days=1)
        mine = {"agent_id": agent_id}
        return AgentStats(
            my_chats_today=await self.chat_store.count_chats(
                {**mine, "created_at": {"$gte": today, "$lt": tomorrow}}
            ),
            my_active_chats=await self.chat_store.count_chats(
                {**mine, "status": ChatStatus.ACTIVE.value}
            ),
            my_total_chats=await self.chat_store.count_chats(mine),
            my_avg_rating=await self.chat_store.average_rating(mine),
            pending_chats=await self.chat_store.count_chats(
                {"status": ChatStatus.PENDING.value}
            ),
        )

    async def user_stats(self, customer_id: str) -> UserStats:
        mine = {"customer_id": customer_id}
        counts = await self._status_counts(mine)
        return UserStats(
            my_total_chats=await self.chat_store.count_chats(mine),
            my_active_chats=counts[ChatStatus.ACTIVE],
            my_pending_chats=counts[ChatStatus.PENDING],
            my_ended_chats=counts[ChatStatus.ENDED],
            my_avg_rating=await self.chat_store.average_rating(mine),
        )

    async def user_recent_chats(self, customer_id: str) -> List[ChatRecord]:
        return await self.chat_store.recent_chats_for_customer(
            customer_id, self.recent_chats_limit
        )
