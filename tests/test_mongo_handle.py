"""
MongoCollectionHandle tests with a mocked motor collection
"""

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from unittest.mock import AsyncMock, MagicMock

from docstore.services.database import MongoCollectionHandle, cast_identifiers


@pytest.fixture
def motor_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.replace_one = AsyncMock(
        return_value=MagicMock(matched_count=1, modified_count=1, upserted_id=None)
    )
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.find_one_and_update = AsyncMock(return_value={"_id": "x"})
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=3))
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def handle(motor_collection):
    return MongoCollectionHandle("acme", "orders", motor_collection)


class TestCastIdentifiers:

    def test_hex_string_cast(self):
        oid = ObjectId()
        assert cast_identifiers({"_id": str(oid), "n": 1}) == {"_id": oid, "n": 1}

    def test_operator_values_cast(self):
        oid = ObjectId()
        cast = cast_identifiers({"_id": {"$in": [str(oid), "other"], "$exists": True}})
        assert cast == {"_id": {"$in": [oid, "other"], "$exists": True}}

    def test_other_values_untouched(self):
        assert cast_identifiers({"_id": "123qwerty"}) == {"_id": "123qwerty"}
        assert cast_identifiers({"n": "5f0c0ffee0000000000abcd1"}) == {"n": "5f0c0ffee0000000000abcd1"}


class TestMongoCollectionHandle:

    def test_namespace(self, handle):
        assert handle.namespace == "acme/orders"

    @pytest.mark.asyncio
    async def test_insert_assigns_identifier(self, handle, motor_collection):
        stored = await handle.insert_one({"text": "t1"})

        assert isinstance(stored["_id"], ObjectId)
        motor_collection.insert_one.assert_awaited_once_with(stored)

    @pytest.mark.asyncio
    async def test_replace_upsert(self, handle, motor_collection):
        oid = ObjectId()
        outcome = await handle.replace_one({"_id": str(oid)}, {"_id": oid, "text": "t1"}, upsert=True)

        motor_collection.replace_one.assert_awaited_once_with(
            {"_id": oid}, {"_id": oid, "text": "t1"}, upsert=True
        )
        assert outcome.matched_count == 1

    @pytest.mark.asyncio
    async def test_find_one_and_update_returns_after(self, handle, motor_collection):
        oid = ObjectId()
        await handle.find_one_and_update({"_id": oid}, {"$set": {"a": 1}})

        motor_collection.find_one_and_update.assert_awaited_once_with(
            {"_id": oid}, {"$set": {"a": 1}}, return_document=ReturnDocument.AFTER
        )

    @pytest.mark.asyncio
    async def test_delete_many_count(self, handle, motor_collection):
        assert await handle.delete_many({"number": 2000}) == 3
        motor_collection.delete_many.assert_awaited_once_with({"number": 2000})

    @pytest.mark.asyncio
    async def test_find_applies_cursor_options(self, handle, motor_collection):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=[{"n": 1}])
        motor_collection.find.return_value = cursor

        docs = await handle.find({"n": 1}, sort=[("n", -1)], skip=2, limit=5)

        assert docs == [{"n": 1}]
        cursor.sort.assert_called_once_with([("n", -1)])
        cursor.skip.assert_called_once_with(2)
        cursor.limit.assert_called_once_with(5)
        cursor.to_list.assert_awaited_once_with(length=5)

    @pytest.mark.asyncio
    async def test_ensure_index(self, handle, motor_collection):
        await handle.ensure_index("email", unique=True, name="idx_email")

        motor_collection.create_index.assert_awaited_once_with(
            [("email", 1)], name="idx_email", unique=True, background=True
        )
