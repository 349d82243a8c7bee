"""Tests for debounced document writes."""

import asyncio

from nutrisnap.services.documents import DebouncedWriter
from tests.conftest import InMemoryDocumentRepository


def _writer(
    repository: InMemoryDocumentRepository, delay: float = 0.05
) -> DebouncedWriter:
    return DebouncedWriter(
        repository=repository, delay_seconds=delay, retry_delay_seconds=0.0
    )


def test_scheduled_writes_coalesce_last_write_wins(
    documents: InMemoryDocumentRepository,
) -> None:
    documents.documents["u1"] = {}
    writer = _writer(documents)

    async def run() -> None:
        writer.schedule("u1", {"scannedFoods": [1]})
        writer.schedule("u1", {"scannedFoods": [1, 2], "mealPlan": {}})
        assert writer.has_pending("u1")
        await asyncio.sleep(0.15)

    asyncio.run(run())

    assert len(documents.writes) == 1
    kind, fields = documents.writes[0]
    assert kind == "update"
    assert fields["scannedFoods"] == [1, 2]
    assert "mealPlan" in fields
    assert "updatedAt" in fields
    assert not writer.has_pending("u1")


def test_flush_writes_pending_fields_immediately(
    documents: InMemoryDocumentRepository,
) -> None:
    documents.documents["u1"] = {}
    writer = _writer(documents, delay=10.0)

    async def run() -> None:
        writer.schedule("u1", {"waterGoal": 64})
        await writer.flush()

    asyncio.run(run())

    assert documents.documents["u1"]["waterGoal"] == 64
    assert not writer.has_pending("u1")


def test_write_now_retries_once(documents: InMemoryDocumentRepository) -> None:
    documents.documents["u1"] = {}
    documents.fail_writes = 1

    ok = asyncio.run(_writer(documents).write_now("u1", {"weightGoal": 150}))

    assert ok
    assert documents.documents["u1"]["weightGoal"] == 150


def test_write_now_gives_up_after_second_failure(
    documents: InMemoryDocumentRepository,
) -> None:
    documents.documents["u1"] = {}
    documents.fail_writes = 2

    ok = asyncio.run(_writer(documents).write_now("u1", {"weightGoal": 150}))

    assert not ok
    assert "weightGoal" not in documents.documents["u1"]


def test_append_now_adds_to_array(documents: InMemoryDocumentRepository) -> None:
    documents.documents["u1"] = {"foodHistory": [{"id": "a"}]}

    ok = asyncio.run(_writer(documents).append_now("u1", "foodHistory", {"id": "b"}))

    assert ok
    assert documents.documents["u1"]["foodHistory"] == [{"id": "a"}, {"id": "b"}]
