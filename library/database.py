"""
MongoDB connection manager for async operations.
Owns the client and the users/books collections, and creates their indexes.
"""

from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

from utilities.errors import ValidationError

logger = structlog.get_logger(__name__)


def parse_object_id(value: str) -> ObjectId:
    """Parse a hex document id, raising ``ValidationError`` for malformed input."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid id format", details={"id": value})


class MongoDBManager:
    """
    Async MongoDB manager.
    Handles connection, indexing and access to the e-libro collections.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        users_collection: str = "users",
        books_collection: str = "books",
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            users_collection: Name of the users collection
            books_collection: Name of the books collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.users_collection_name = users_collection
        self.books_collection_name = books_collection
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.users: Optional[AsyncIOMotorCollection] = None
        self.books: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and create the book indexes."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]
            self.users = self.database[self.users_collection_name]
            self.books = self.database[self.books_collection_name]

            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes for the catalog query patterns.
        User indexes are owned by the credential store.
        """
        try:
            # Gutenberg id is the natural key of a book
            await self.books.create_index("gutenberg_id", unique=True)

            # Title sort and regex filters
            await self.books.create_index("title")
            await self.books.create_index("authors.name")

            # Language membership filter
            await self.books.create_index("languages")

            # Top-downloads report
            await self.books.create_index([("downloads", -1)])

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            books_count = await self.books.estimated_document_count()
            users_count = await self.users.estimated_document_count()

            return {
                "status": "healthy",
                "books_count": books_count,
                "users_count": users_count,
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
