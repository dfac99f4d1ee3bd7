"""In-memory store tests — the contract the SQL stores share."""

import pytest

from taskkeeper.domain.task import Task
from taskkeeper.domain.user import User
from taskkeeper.errors import ConflictError
from taskkeeper.stores.memory import InMemoryTaskStore, InMemoryUserStore


@pytest.mark.asyncio
async def test_loaded_task_is_a_copy():
    store = InMemoryTaskStore()
    task = await store.save(Task("alice", "t", ""))
    loaded = await store.find_by_id(task.id)
    loaded.mark_as_completed()
    assert (await store.find_by_id(task.id)).is_completed is False


@pytest.mark.asyncio
async def test_saved_task_is_a_copy():
    store = InMemoryTaskStore()
    task = await store.save(Task("alice", "t", ""))
    task.update_details("changed", "")
    assert (await store.find_by_id(task.id)).title == "t"


@pytest.mark.asyncio
async def test_same_created_at_lists_newest_insert_first():
    store = InMemoryTaskStore()
    first = await store.save(Task("alice", "first", ""))
    second = await store.save(Task("alice", "second", "", created_at=first.created_at))
    assert [t.id for t in await store.find_all_by_user_id("alice")] == [second.id, first.id]


@pytest.mark.asyncio
async def test_user_email_unique():
    store = InMemoryUserStore()
    await store.save(User("a@example.com"))
    with pytest.raises(ConflictError):
        await store.save(User("a@example.com"))


@pytest.mark.asyncio
async def test_find_by_email_ignores_case():
    store = InMemoryUserStore()
    saved = await store.save(User("Erin@Example.com"))
    assert await store.find_by_email("ERIN@example.COM") == saved
