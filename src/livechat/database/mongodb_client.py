import logging
import asyncio
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ServerSelectionTimeoutError, ConnectionFailure
from pymongo.server_api import ServerApi

logger = logging.getLogger(__name__)


class MongoDBClient:
    def __init__(
        self,
        mongo_uri: str,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        timeout_ms: int = 30000
    ):
        self.uri = mongo_uri
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout_ms = timeout_ms
        self.client = None

    async def connect(self) -> None:
        """Establish connection with retry logic"""
        for attempt in range(self.max_retries):
            try:
                self.client = AsyncIOMotorClient(
                    self.uri,
                    connectTimeoutMS=self.timeout_ms,
                    socketTimeoutMS=self.timeout_ms,
                    serverSelectionTimeoutMS=self.timeout_ms,
                    tz_aware=False,
                    server_api=ServerApi('1')
                )
                await self.test_connection()
                logger.info("Successfully connected to MongoDB")
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                if attempt == self.max_retries - 1:
                    logger.error("Failed to connect after "
                                 f"{self.max_retries} attempts")
                    raise
                logger.info(f"Connection attempt {attempt + 1} failed: {e}")
                logger.info(f"Retrying in {self.retry_delay} seconds...")
                await asyncio.sleep(self.retry_delay)

    async def test_connection(self) -> None:
        """Test MongoDB connection"""
        if not self.client:
            raise ConnectionError("Client not initialized")
        await self.client.admin.command('ping')

    def get_database(self, db_name: str) -> AsyncIOMotorDatabase:
        if not self.client:
            raise ConnectionError("Client not initialized")
        return self.client[db_name]

    async def cleanup(self) -> None:
        """Cleanup resources"""
        if self.client:
            self.client.close()
            self.client = None


async def ensure_indexes(db: AsyncIOMotorDatabase, mongo_cfg) -> None:
    """Create the indexes the queue, history and stats queries rely on."""
    chats = db[mongo_cfg.chat_collection]
    await chats.create_index([("status", ASCENDING), ("created_at", ASCENDING)])
    await chats.create_index(
        [("customer_id", ASCENDING), ("created_at", DESCENDING)]
    )
    await chats.create_index(
        [("agent_id", ASCENDING), ("created_at", DESCENDING)]
    )
    await db[mongo_cfg.message_collection].create_index(
        [("chat_id", ASCENDING), ("created_at", ASCENDING)]
    )
    await db[mongo_cfg.user_collection].create_index([("role", ASCENDING)])
    logger.info("MongoDB indexes ensured")
