import logging
from datetime import datetime
from src.livechat.models.chat import CurrentUser, UserRole

logger = logging.getLogger(__name__)


class UserDirectory:
    """Profiles of users seen through verified tokens.

    Accounts are issued elsewhere; this keeps a local copy so statistics
    can count agents and customers.
    """

    def __init__(self, collection):
        self.collection = collection

    async def sync(self, user: CurrentUser) -> None:
        now = datetime.now()
        await self.collection.update_one(
            {"_id": user.id},
            {
                "$set": {
                    "username": user.username,
                    "email": user.email,
                    "role": user.role.value,
                    "last_seen": now,
                },
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    async def count_by_role(self, role: UserRole) -> int:
        return await self.collection.count_documents({"role": role.value})
