"""
MongoDB connection lifecycle and index setup
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self):
        """Initialize MongoDB connection"""
        settings.require("MONGO_URL")
        self.client = AsyncIOMotorClient(settings.MONGO_URL, serverSelectionTimeoutMS=5000)
        self.db = self.client[settings.MONGO_DB_NAME]
        logger.info("✅ MongoDB connected (database=%s)", settings.MONGO_DB_NAME)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


# Global database manager
db_manager = DatabaseManager()


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes used by the API"""
    await db.users.create_index([("user_id", ASCENDING)], unique=True)
    await db.users.create_index([("role", ASCENDING), ("created_at", DESCENDING)])

    await db.courses.create_index([("course_id", ASCENDING)], unique=True)
    await db.courses.create_index([("creator_id", ASCENDING)])
    await db.courses.create_index([("is_published", ASCENDING), ("published_at", DESCENDING)])

    await db.lectures.create_index([("lecture_id", ASCENDING)], unique=True)

    await db.course_progress.create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING)],
        unique=True
    )

    await db.certificates.create_index([("certificate_id", ASCENDING)], unique=True)
    await db.certificates.create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING)],
        unique=True
    )

    await db.messages.create_index([("created_at", DESCENDING)])

    logger.info("✅ MongoDB indexes ensured")
