"""
MongoDB connection lifecycle and index management.
The manager owns the client; repositories only ever receive the database handle.
"""

from typing import Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

logger = structlog.get_logger(__name__)


class MongoDBManager:
    """
    Async MongoDB manager for the book club collections.
    Handles connection, indexing and shutdown.
    """

    def __init__(self, connection_url: str, database_name: str, timeout_ms: int = 5000):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            timeout_ms: Bound for server selection and socket operations
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and make sure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms,
            )
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await create_indexes(self.database)
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")


async def create_indexes(database: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes the application relies on.

    The unique indexes are the source of truth for uniqueness: user email,
    username, GitHub account (sparse, local users have none), and one
    reading-progress record per (user, book, club).
    """
    try:
        await database.users.create_index("email", unique=True)
        await database.users.create_index("username", unique=True)
        await database.users.create_index("github_id", unique=True, sparse=True)

        await database.meetings.create_index([("club", ASCENDING), ("date_time", ASCENDING)])
        await database.posts.create_index([("club", ASCENDING), ("created_at", ASCENDING)])

        await database.reading_progress.create_index(
            [("user", ASCENDING), ("book", ASCENDING), ("club", ASCENDING)],
            unique=True,
        )
        await database.reading_progress.create_index("club")

        logger.info("Successfully created MongoDB indexes")

    except PyMongoError as e:
        logger.error("Failed to create indexes", error=str(e))
        raise


async def health_check(database: AsyncIOMotorDatabase) -> Dict:
    """
    Perform database health check.

    Returns:
        Dictionary with health status
    """
    try:
        await database.command("ping")
        return {"status": "healthy"}
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
