import logging
from src.livechat.database.mongodb_client import MongoDBClient, ensure_indexes
from src.livechat.chat.chat_store import ChatStore
from src.livechat.chat.stats_service import StatsService
from src.livechat.chat.user_directory import UserDirectory
from src.livechat.realtime.coordinator import ChatCoordinator
from src.livechat.realtime.manager import ConnectionManager
from src.livechat.utils.jwt_validator import JWTValidator
from src.livechat.utils.settings import SETTINGS


logger = logging.getLogger(__name__)


class ServiceContainer:
    """Container for all service instances with centralized initialization."""

    def __init__(self, cfg):
        self.cfg = cfg
        self.mongodb_client = None
        self.db = None
        self.chat_store = None
        self.user_directory = None
        self.stats_service = None
        self.coordinator = None
        self.connections = ConnectionManager()
        self.jwt_validator = JWTValidator(
            SETTINGS.JWT_SECRET, cfg.auth.algorithm
        )

    async def initialize(self):
        """Connect to MongoDB, then wire the services over its collections."""
        try:
            self.mongodb_client = MongoDBClient(
                SETTINGS.MONGODB_URI,
                max_retries=self.cfg.mongodb.max_retries,
                retry_delay=self.cfg.mongodb.retry_delay,
                timeout_ms=self.cfg.mongodb.timeout_ms,
            )
            await self.mongodb_client.connect()
            self.db = self.mongodb_client.get_database(
                self.cfg.mongodb.db_name
            )
            await ensure_indexes(self.db, self.cfg.mongodb)
            self.bind_collections(
                self.db[self.cfg.mongodb.chat_collection],
                self.db[self.cfg.mongodb.message_collection],
                self.db[self.cfg.mongodb.user_collection],
            )
        except Exception as e:
            logger.error(f"Error initializing services: {e}")
            raise

    def bind_collections(
        self, chat_collection, message_collection, user_collection
    ) -> None:
        """Build the services over already-open collections."""
        self.chat_store = ChatStore(chat_collection, message_collection)
        self.user_directory = UserDirectory(user_collection)
        self.coordinator = ChatCoordinator(
            self.chat_store, self.user_directory, self.connections
        )
        self.stats_service = StatsService(
            self.chat_store,
            self.user_directory,
            self.connections,
            recent_chats_limit=self.cfg.chat.recent_chats_limit,
        )

    async def cleanup(self):
        """Cleanup all resources."""
        if self.mongodb_client:
            await self.mongodb_client.cleanup()
        self.connections.rooms.clear()
        self.connections.presence.clear()
        logger.info("Cleanup complete")
