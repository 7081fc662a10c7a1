"""
Tests for the MongoDB repository adapter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from catalog.database import CURRENCIES, SUBCATEGORIES, MongoDBManager, MongoRepository, to_object_id
from catalog.errors import ConflictError


class FakeCursor:
    """Async cursor yielding canned documents and recording chained calls."""

    def __init__(self, documents):
        self.documents = list(documents)
        self.calls = []

    def sort(self, spec):
        self.calls.append(("sort", spec))
        return self

    def skip(self, count):
        self.calls.append(("skip", count))
        return self

    def limit(self, count):
        self.calls.append(("limit", count))
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self.documents:
            yield document


@pytest.fixture
def collection():
    return AsyncMock()


def test_to_object_id():
    object_id = ObjectId()
    assert to_object_id(str(object_id)) == object_id
    assert to_object_id(object_id) is object_id
    assert to_object_id("not-an-id") is None
    assert to_object_id(None) is None


@pytest.mark.asyncio
async def test_create_sets_timestamps_and_string_id(collection):
    inserted_id = ObjectId()
    collection.insert_one.return_value = MagicMock(inserted_id=inserted_id)
    repository = MongoRepository(collection, CURRENCIES)

    created = await repository.create({"name": "EUR"})

    assert created["_id"] == str(inserted_id)
    assert created["name"] == "EUR"
    assert created["createdAt"] == created["updatedAt"]
    inserted = collection.insert_one.call_args.args[0]
    assert "createdAt" in inserted


@pytest.mark.asyncio
async def test_create_duplicate_key_conflict(collection):
    collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")
    repository = MongoRepository(collection, CURRENCIES)

    with pytest.raises(ConflictError) as exc_info:
        await repository.create({"name": "EUR"})
    assert exc_info.value.message == "Currency already exists"


@pytest.mark.asyncio
async def test_find_by_malformed_id_skips_query(collection):
    repository = MongoRepository(collection, CURRENCIES)
    assert await repository.find_by_id("nope") is None
    collection.find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_find_normalizes_object_ids():
    parent_id = ObjectId()
    document_id = ObjectId()
    cursor = FakeCursor([{"_id": document_id, "name": "Haiku", "category": parent_id}])
    collection = MagicMock()
    collection.find.return_value = cursor
    repository = MongoRepository(collection, SUBCATEGORIES)

    documents = await repository.find({"name": "Haiku"}, skip=5, limit=5, sort=[("createdAt", -1)])

    assert documents == [{"_id": str(document_id), "name": "Haiku", "category": str(parent_id)}]
    assert cursor.calls == [("sort", [("createdAt", -1)]), ("skip", 5), ("limit", 5)]


@pytest.mark.asyncio
async def test_update_uses_set_and_returns_new_document(collection):
    document_id = ObjectId()
    collection.find_one_and_update.return_value = {"_id": document_id, "name": "GBP"}
    repository = MongoRepository(collection, CURRENCIES)

    updated = await repository.update_by_id(str(document_id), {"name": "GBP"})

    assert updated == {"_id": str(document_id), "name": "GBP"}
    filter_query, update = collection.find_one_and_update.call_args.args
    assert filter_query == {"_id": document_id}
    assert update["$set"]["name"] == "GBP"
    assert "updatedAt" in update["$set"]
    assert collection.find_one_and_update.call_args.kwargs["return_document"] == ReturnDocument.AFTER


@pytest.mark.asyncio
async def test_delete_missing_document(collection):
    collection.find_one_and_delete.return_value = None
    repository = MongoRepository(collection, CURRENCIES)
    assert await repository.delete_by_id(str(ObjectId())) is None


@pytest.mark.asyncio
async def test_errors_propagate(collection):
    collection.count_documents.side_effect = RuntimeError("network down")
    repository = MongoRepository(collection, CURRENCIES)
    with pytest.raises(RuntimeError):
        await repository.count()


def test_repository_requires_connection():
    manager = MongoDBManager("mongodb://localhost:27017", "storefront_test")
    with pytest.raises(RuntimeError):
        manager.repository(CURRENCIES)


@pytest.mark.asyncio
async def test_health_check_reports_unhealthy():
    manager = MongoDBManager("mongodb://localhost:27017", "storefront_test")
    manager.database = AsyncMock()
    manager.database.command.side_effect = Exception("no server")

    health = await manager.health_check()
    assert health["status"] == "unhealthy"
