from datetime import datetime, timezone

import pytest
import pytest_asyncio

from challenge_builder.orchestrator.mapping import ChallengeBuilderReport
from challenge_builder.storage import ResultStore


@pytest_asyncio.fixture
async def store():
    store = ResultStore(":memory:")
    await store.initialize()
    yield store
    await store.close()


def _report(summary: str) -> ChallengeBuilderReport:
    return ChallengeBuilderReport.model_validate(
        {
            "planSummary": summary,
            "newChallengeSuggestions": [{"title": "Guided tour", "impact": "high"}],
            "errors": [{"directiveId": "c2", "directiveKind": "update", "failure": "decode", "message": "bad"}],
        }
    )


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get("proj-1") is None


@pytest.mark.asyncio
async def test_save_and_get(store):
    saved_at = datetime(2025, 5, 1, 12, 30, tzinfo=timezone.utc)

    await store.save("proj-1", _report("first"), saved_at=saved_at)
    stored = await store.get("proj-1")

    assert stored.report.plan_summary == "first"
    assert stored.report.new_challenge_suggestions[0].title == "Guided tour"
    assert stored.report.errors[0].failure == "decode"
    assert stored.last_run_at == saved_at


@pytest.mark.asyncio
async def test_save_replaces_previous(store):
    await store.save("proj-1", _report("first"))
    await store.save("proj-1", _report("second"))

    stored = await store.get("proj-1")

    assert stored.report.plan_summary == "second"


@pytest.mark.asyncio
async def test_delete(store):
    await store.save("proj-1", _report("first"))

    assert await store.delete("proj-1") is True
    assert await store.delete("proj-1") is False
    assert await store.get("proj-1") is None


@pytest.mark.asyncio
async def test_file_backed_store(tmp_path):
    db_path = tmp_path / "nested" / "results.db"
    store = ResultStore(db_path)
    await store.initialize()

    await store.save("proj-1", _report("persisted"))
    await store.close()

    reopened = ResultStore(db_path)
    await reopened.initialize()
    stored = await reopened.get("proj-1")
    await reopened.close()

    assert stored.report.plan_summary == "persisted"


@pytest.mark.asyncio
async def test_requires_initialize():
    with pytest.raises(RuntimeError, match="not initialized"):
        await ResultStore(":memory:").get("proj-1")
