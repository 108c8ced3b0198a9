"""
Single-document operation tests
"""

import pytest
from bson import ObjectId

from docstore.core.exceptions import InvalidIdentifier, NotFound, ValidationError
from docstore.models.documents import COMMON_SCHEMA, SchemaDescriptor
from docstore.services import documents


# =============================================================================
# delete_one / delete_many
# =============================================================================


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_one_returns_removed_document(self, orders):
        doc = await orders.insert_one({"text": "t1"})

        removed = await documents.delete_one(orders, str(doc["_id"]))

        assert removed == doc
        assert await orders.count_documents() == 0

    @pytest.mark.asyncio
    async def test_delete_one_twice_is_not_found(self, orders):
        doc = await orders.insert_one({"text": "t1"})
        await documents.delete_one(orders, str(doc["_id"]))

        with pytest.raises(NotFound):
            await documents.delete_one(orders, str(doc["_id"]))

    @pytest.mark.asyncio
    async def test_delete_one_invalid_id(self, orders):
        with pytest.raises(InvalidIdentifier):
            await documents.delete_one(orders, "123qwerty")

    @pytest.mark.asyncio
    async def test_delete_many_with_predicate(self, orders):
        await orders.insert_one({"number": 1000})
        await orders.insert_one({"number": 2000})
        await orders.insert_one({"number": 2000})

        assert await documents.delete_many(orders, {"number": 2000}) == 2
        assert await orders.count_documents() == 1

    @pytest.mark.asyncio
    async def test_delete_many_without_predicate_deletes_nothing(self, orders, monkeypatch):
        await orders.insert_one({"number": 1000})

        async def fail(predicate):
            raise AssertionError("storage must not be called")

        monkeypatch.setattr(orders, "delete_many", fail)
        assert await documents.delete_many(orders, None) == 0
        assert await orders.count_documents() == 1


# =============================================================================
# update_one
# =============================================================================


class TestUpdateOne:

    @pytest.mark.asyncio
    async def test_sets_fields_and_keeps_others(self, orders):
        doc = await orders.insert_one({"text": "t1", "number": 1})

        updated = await documents.update_one(orders, str(doc["_id"]), {"number": 2, "TS": 5})

        assert updated == {"_id": doc["_id"], "text": "t1", "number": 2, "TS": 5}

    @pytest.mark.asyncio
    async def test_identifier_in_body_is_ignored(self, orders):
        doc = await orders.insert_one({"text": "t1"})
        other = str(ObjectId())

        updated = await documents.update_one(orders, str(doc["_id"]), {"_id": other, "text": "t2", "TS": 1})

        assert updated["_id"] == doc["_id"]
        assert await orders.count_documents({"_id": other}) == 0

    @pytest.mark.asyncio
    async def test_stamps_version_marker_when_absent(self, orders):
        doc = await orders.insert_one({"text": "t1"})

        updated = await documents.update_one(orders, str(doc["_id"]), {"text": "t2"})

        assert isinstance(updated["TS"], int)
        assert updated["TS"] > 0

    @pytest.mark.asyncio
    async def test_nothing_to_set_returns_current_document(self, resolver):
        handle = await resolver.resolve("acme", "events", SchemaDescriptor(version_field=None))
        doc = await handle.insert_one({"text": "t1"})

        unchanged = await documents.update_one(handle, str(doc["_id"]), {"_id": str(doc["_id"])})

        assert unchanged == {"_id": doc["_id"], "text": "t1"}
        with pytest.raises(NotFound):
            await documents.update_one(handle, str(ObjectId()), {})

    @pytest.mark.asyncio
    async def test_missing_document(self, orders):
        with pytest.raises(NotFound):
            await documents.update_one(orders, str(ObjectId()), {"text": "t2"})

    @pytest.mark.asyncio
    async def test_invalid_id_and_body(self, orders):
        doc = await orders.insert_one({"text": "t1"})
        with pytest.raises(InvalidIdentifier):
            await documents.update_one(orders, "123qwerty", {"text": "t2"})
        with pytest.raises(ValidationError):
            await documents.update_one(orders, str(doc["_id"]), ["not", "a", "document"])
        with pytest.raises(ValidationError):
            await documents.update_one(orders, str(doc["_id"]), {"$inc": {"n": 1}})


# =============================================================================
# upsert_one
# =============================================================================


class TestUpsertOne:

    @pytest.mark.asyncio
    async def test_creates_with_fresh_id(self, orders):
        stored = await documents.upsert_one(orders, {"text": "t1"})

        assert isinstance(stored["_id"], ObjectId)
        assert COMMON_SCHEMA.strip_reserved(stored) == {"text": "t1"}
        assert await orders.count_documents() == 1

    @pytest.mark.asyncio
    async def test_replaces_existing(self, orders):
        doc = await orders.insert_one({"text": "t1", "extra": True})

        stored = await documents.upsert_one(orders, {"_id": str(doc["_id"]), "text": "t2"})

        assert stored == {"_id": doc["_id"], "text": "t2"}
        assert await orders.count_documents() == 1

    @pytest.mark.asyncio
    async def test_creates_under_given_id(self, orders):
        oid = ObjectId()
        stored = await documents.upsert_one(orders, {"_id": str(oid), "text": "t1"})
        assert stored["_id"] == oid


# =============================================================================
# Reads
# =============================================================================


class TestReads:

    @pytest.mark.asyncio
    async def test_get_one(self, orders):
        doc = await orders.insert_one({"text": "t1"})
        assert await documents.get_one(orders, str(doc["_id"])) == doc

        with pytest.raises(NotFound):
            await documents.get_one(orders, str(ObjectId()))

    @pytest.mark.asyncio
    async def test_find_sort_skip_limit(self, orders):
        for n in (3, 1, 2, 5, 4):
            await orders.insert_one({"n": n})

        docs = await documents.find(orders, {"n": {"$gt": 1}}, sort=[("n", -1)], skip=1, limit=2)

        assert [d["n"] for d in docs] == [4, 3]

    @pytest.mark.asyncio
    async def test_find_all(self, orders):
        await orders.insert_one({"n": 1})
        await orders.insert_one({"n": 2})
        assert len(await documents.find(orders, {})) == 2
