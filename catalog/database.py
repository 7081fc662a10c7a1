"""
MongoDB database utilities for async operations.
Handles connection, indexing, and the per-collection CRUD adapter.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from .errors import ConflictError
from .repository import Document, SortSpec

logger = structlog.get_logger(__name__)

USERS = "users"
CATEGORIES = "categories"
SUBCATEGORIES = "subcategories"
AUTHORS = "authors"
CURRENCIES = "currencies"

COLLECTIONS = (USERS, CATEGORIES, SUBCATEGORIES, AUTHORS, CURRENCIES)

LABELS = {
    USERS: "User",
    CATEGORIES: "Category",
    SUBCATEGORIES: "Sub category",
    AUTHORS: "Author",
    CURRENCIES: "Currency",
}


def to_object_id(entity_id: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None for anything that is not an ObjectId."""
    if isinstance(entity_id, ObjectId):
        return entity_id
    if entity_id is None:
        return None
    try:
        return ObjectId(entity_id)
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoRepository:
    """
    CRUD adapter over a single MongoDB collection.

    Returned documents have every top-level ObjectId (including ``_id``)
    converted to its string form. Creation and update timestamps are
    assigned here.
    """

    def __init__(self, collection: AsyncIOMotorCollection, name: str):
        self.collection = collection
        self.name = name
        self.label = LABELS.get(name, name)

    @staticmethod
    def _normalize(document: Optional[Dict[str, Any]]) -> Optional[Document]:
        if document is None:
            return None
        return {
            key: str(value) if isinstance(value, ObjectId) else value
            for key, value in document.items()
        }

    async def find(
        self,
        filter_query: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
        limit: int = 0,
        sort: Optional[SortSpec] = None,
    ) -> List[Document]:
        """
        Find documents matching a filter.

        Args:
            filter_query: MongoDB filter (all documents when omitted)
            skip: Number of documents to skip
            limit: Maximum number of documents (0 means no limit)
            sort: List of (field, direction) pairs

        Returns:
            List of normalized documents
        """
        try:
            cursor = self.collection.find(dict(filter_query or {}))
            if sort:
                cursor = cursor.sort(list(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)

            documents = []
            async for document in cursor:
                documents.append(self._normalize(document))
            return documents

        except Exception as e:
            logger.error("Failed to find documents", collection=self.name, error=str(e))
            raise

    async def find_one(self, filter_query: Mapping[str, Any]) -> Optional[Document]:
        try:
            document = await self.collection.find_one(dict(filter_query))
            return self._normalize(document)
        except Exception as e:
            logger.error("Failed to find document", collection=self.name, error=str(e))
            raise

    async def find_by_id(self, entity_id: str) -> Optional[Document]:
        """
        Get a document by its _id.

        Returns:
            The document, or None when the id is malformed or unknown
        """
        object_id = to_object_id(entity_id)
        if object_id is None:
            return None
        return await self.find_one({"_id": object_id})

    async def count(self, filter_query: Optional[Mapping[str, Any]] = None) -> int:
        try:
            return await self.collection.count_documents(dict(filter_query or {}))
        except Exception as e:
            logger.error("Failed to count documents", collection=self.name, error=str(e))
            raise

    async def create(self, document: Mapping[str, Any]) -> Document:
        """
        Insert a new document.

        Raises:
            ConflictError: A unique index rejected the document
        """
        now = utcnow()
        record = dict(document)
        record["createdAt"] = now
        record["updatedAt"] = now

        try:
            result = await self.collection.insert_one(record)
        except DuplicateKeyError as e:
            logger.warning("Duplicate key on insert", collection=self.name, error=str(e))
            raise ConflictError(f"{self.label} already exists") from e
        except Exception as e:
            logger.error("Failed to insert document", collection=self.name, error=str(e))
            raise

        record["_id"] = result.inserted_id
        logger.debug("Inserted document", collection=self.name, id=str(result.inserted_id))
        return self._normalize(record)

    async def update_by_id(self, entity_id: str, changes: Mapping[str, Any]) -> Optional[Document]:
        """
        Apply a $set update and return the updated document.

        Returns:
            The updated document, or None when nothing matched
        """
        object_id = to_object_id(entity_id)
        if object_id is None:
            return None

        update_data = dict(changes)
        update_data["updatedAt"] = utcnow()

        try:
            document = await self.collection.find_one_and_update(
                {"_id": object_id},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            logger.warning("Duplicate key on update", collection=self.name, id=entity_id, error=str(e))
            raise ConflictError(f"{self.label} already exists") from e
        except Exception as e:
            logger.error("Failed to update document", collection=self.name, id=entity_id, error=str(e))
            raise

        if document is None:
            logger.warning("Document not found for update", collection=self.name, id=entity_id)
        return self._normalize(document)

    async def delete_by_id(self, entity_id: str) -> Optional[Document]:
        """
        Delete a document by _id.

        Returns:
            The deleted document, or None when nothing matched
        """
        object_id = to_object_id(entity_id)
        if object_id is None:
            return None

        try:
            document = await self.collection.find_one_and_delete({"_id": object_id})
        except Exception as e:
            logger.error("Failed to delete document", collection=self.name, id=entity_id, error=str(e))
            raise

        if document is None:
            logger.warning("Document not found for deletion", collection=self.name, id=entity_id)
        return self._normalize(document)


class MongoDBManager:
    """
    Async MongoDB manager.
    Owns the client, creates indexes and hands out one repository per collection.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            username: Optional user, when not embedded in the URL
            password: Optional password, when not embedded in the URL
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.username = username
        self.password = password
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and ensure indexes exist."""
        try:
            client_options = {}
            if self.username:
                client_options["username"] = self.username
                client_options["password"] = self.password
            self.client = AsyncIOMotorClient(self.connection_url, **client_options)
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
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
        Create the unique indexes the API relies on for consistency.
        Concurrent duplicate registrations are only rejected here.
        """
        try:
            await self.database[USERS].create_index("email", unique=True)
            await self.database[USERS].create_index("username", unique=True)
            await self.database[USERS].create_index([("createdAt", -1)])
            await self.database[CURRENCIES].create_index("name", unique=True)
            await self.database[SUBCATEGORIES].create_index("category")
            await self.database[AUTHORS].create_index("name")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    def repository(self, name: str) -> MongoRepository:
        """Get the CRUD adapter for a collection."""
        if self.database is None:
            raise RuntimeError("MongoDB manager is not connected")
        return MongoRepository(self.database[name], name)

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            counts = {}
            for name in COLLECTIONS:
                counts[name] = await self.database[name].estimated_document_count()
            return {"status": "healthy", "counts": counts}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
