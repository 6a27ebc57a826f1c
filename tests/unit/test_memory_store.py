import asyncio

import pytest
from bson import ObjectId

from syncgateway.core.exceptions import MissingIdentifierError
from syncgateway.store import InMemoryDocumentStore, ModificationClock


class FrozenTime:
    """Time source that never advances."""

    def __call__(self):
        return 1_700_000_000.0


@pytest.mark.asyncio
async def test_save_assigns_identifier_and_stamps_collection():
    store = InMemoryDocumentStore()
    document = {"title": "note"}

    identifier = await store.save("notes", document)

    assert isinstance(identifier, ObjectId)
    assert document["_id"] == identifier
    assert await store.find("notes", identifier) == {"_id": identifier, "title": "note"}
    assert await store.last_modified("notes") > 0


@pytest.mark.asyncio
async def test_save_with_identifier_upserts():
    store = InMemoryDocumentStore()
    identifier = ObjectId()

    await store.save("notes", {"_id": identifier, "v": 1})
    await store.save("notes", {"_id": identifier, "v": 2})

    assert await store.find_all("notes") == [{"_id": identifier, "v": 2}]


@pytest.mark.asyncio
async def test_upsert_and_update_require_identifier():
    store = InMemoryDocumentStore()

    with pytest.raises(MissingIdentifierError):
        await store.upsert("notes", {"v": 1})
    with pytest.raises(MissingIdentifierError):
        await store.update("notes", {"v": 1})
    assert await store.last_modified("notes") == 0


@pytest.mark.asyncio
async def test_update_of_unknown_identifier_is_noop():
    store = InMemoryDocumentStore()

    await store.update("notes", {"_id": ObjectId(), "v": 1})

    assert await store.find_all("notes") == []
    assert await store.last_modified("notes") == 0


@pytest.mark.asyncio
async def test_modification_time_strictly_increases_within_one_millisecond():
    store = InMemoryDocumentStore(clock=ModificationClock(FrozenTime()))
    identifier = await store.save("notes", {"v": 0})

    seen = [await store.modification_time("notes", identifier)]
    for value in range(1, 5):
        await store.update("notes", {"_id": identifier, "v": value})
        seen.append(await store.modification_time("notes", identifier))

    assert seen == sorted(set(seen))
    assert await store.last_modified("notes") == seen[-1]


@pytest.mark.asyncio
async def test_returned_documents_are_copies():
    store = InMemoryDocumentStore()
    identifier = await store.save("notes", {"tags": ["a"]})

    found = await store.find("notes", identifier)
    found["tags"].append("b")

    assert (await store.find("notes", identifier))["tags"] == ["a"]


@pytest.mark.asyncio
async def test_delete_is_idempotent_and_advances_last_modified():
    store = InMemoryDocumentStore()
    identifier = await store.save("notes", {"v": 1})
    before = await store.last_modified("notes")

    await store.delete("notes", identifier)
    after_first = await store.last_modified("notes")
    await store.delete("notes", identifier)

    assert await store.find("notes", identifier) is None
    assert await store.find_all("notes") == []
    assert after_first > before
    assert await store.last_modified("notes") >= after_first


@pytest.mark.asyncio
async def test_delete_on_unknown_collection_creates_high_water_mark():
    store = InMemoryDocumentStore()

    await store.delete("fresh", ObjectId())

    assert await store.last_modified("fresh") > 0


@pytest.mark.asyncio
async def test_find_by_ids_returns_existing_subset_once():
    store = InMemoryDocumentStore()
    first = await store.save("notes", {"n": 1})
    second = await store.save("notes", {"n": 2})
    await store.save("notes", {"n": 3})
    missing = ObjectId()

    found = await store.find_by_ids("notes", [first, missing, first, second])

    assert [document["_id"] for document in found] == [first, second]


@pytest.mark.asyncio
async def test_find_since_is_strict_and_complete():
    store = InMemoryDocumentStore()
    old = await store.save("notes", {"n": 1})
    checkpoint = await store.last_modified("notes")
    fresh = await store.save("notes", {"n": 2})
    await store.update("notes", {"_id": old, "n": 10})

    changed = await store.find_since("notes", checkpoint)

    assert {document["_id"] for document in changed} == {old, fresh}
    assert await store.find_since("notes", await store.last_modified("notes")) == []


@pytest.mark.asyncio
async def test_last_modified_is_monotonic_and_covers_documents():
    store = InMemoryDocumentStore()
    marks = []
    ids = []
    for value in range(5):
        ids.append(await store.save("notes", {"v": value}))
        marks.append(await store.last_modified("notes"))
    await store.delete("notes", ids[0])
    marks.append(await store.last_modified("notes"))
    await store.update("notes", {"_id": ids[1], "v": 99})
    marks.append(await store.last_modified("notes"))

    assert marks == sorted(marks)
    for identifier in ids[1:]:
        assert await store.modification_time("notes", identifier) <= marks[-1]


@pytest.mark.asyncio
async def test_collections_are_isolated():
    store = InMemoryDocumentStore()
    await store.save("a", {"v": 1})

    assert await store.find_all("b") == []
    assert await store.last_modified("b") == 0


@pytest.mark.asyncio
async def test_concurrent_saves_all_land():
    store = InMemoryDocumentStore()

    identifiers = await asyncio.gather(*(store.save("notes", {"v": value}) for value in range(20)))

    assert len(set(identifiers)) == 20
    assert len(await store.find_all("notes")) == 20


@pytest.mark.asyncio
async def test_modification_field_is_not_stored():
    store = InMemoryDocumentStore()

    identifier = await store.save("notes", {"v": 1, "_mtime": 5})

    assert await store.find("notes", identifier) == {"_id": identifier, "v": 1}
    assert await store.find_since("notes", 5) == [{"_id": identifier, "v": 1}]
