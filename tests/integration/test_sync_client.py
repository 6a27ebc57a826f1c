import httpx
import pytest
import pytest_asyncio
from bson import ObjectId

from syncgateway.api.main import create_app
from syncgateway.client import SyncClient, SyncClientError
from syncgateway.store import InMemoryDocumentStore


@pytest_asyncio.fixture
async def sync_client():
    app = create_app(store=InMemoryDocumentStore())
    async with SyncClient("http://test", transport=httpx.ASGITransport(app=app)) as client:
        yield client


@pytest.mark.asyncio
async def test_delta_sync_round(sync_client):
    await sync_client.push("tasks", [{"title": "write"}, {"title": "review"}])

    page = await sync_client.pull_all("tasks")
    assert len(page.documents) == 2
    assert page.last_modified > 0

    unchanged = await sync_client.pull_since("tasks", page.last_modified)
    assert unchanged.empty
    assert unchanged.last_modified == page.last_modified

    target = page.documents[0]
    await sync_client.update("tasks", [{**target, "done": True}])
    delta = await sync_client.pull_since("tasks", page.last_modified)
    assert delta.documents == [{**target, "done": True}]
    assert delta.last_modified > page.last_modified

    await sync_client.delete("tasks", target["_id"])
    after_delete = await sync_client.pull_since("tasks", delta.last_modified)
    assert after_delete.empty
    assert after_delete.last_modified > delta.last_modified


@pytest.mark.asyncio
async def test_pull_by_ids_skips_missing(sync_client):
    await sync_client.push("tasks", [{"title": "only"}])
    stored = (await sync_client.pull_all("tasks")).documents[0]

    page = await sync_client.pull_by_ids("tasks", [stored["_id"], ObjectId()])

    assert page.documents == [stored]


@pytest.mark.asyncio
async def test_update_without_identifier_raises_client_error(sync_client):
    with pytest.raises(SyncClientError) as excinfo:
        await sync_client.update("tasks", [{"title": "no id"}])

    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "missing_identifier"
    assert excinfo.value.detail == "Missing ID"
