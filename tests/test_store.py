"""Tests for the pipeline store and the detail editor."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from leadflow.editor import DetailEditor
from leadflow.gateway import InMemoryGateway, InMemoryLeadCollection
from leadflow.schemas import FetchResult, Lead, LeadStatus, Priority, Task
from leadflow.store import PipelineStore

from conftest import NOW


def _loaded(gateway) -> PipelineStore:
    store = PipelineStore(gateway)
    asyncio.run(store.load())
    return store


def _ids(store: PipelineStore) -> list[str]:
    return [lead.id for lead in store.leads]


class BrokenGateway(InMemoryGateway):
    async def fetch_all(self):
        return FetchResult(leads=[], error="relation \"leads\" does not exist")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def test_load_replaces_collection(gateway):
    store = _loaded(gateway)
    assert sorted(_ids(store)) == ["1", "2", "3", "4", "5"]
    assert store.loading is False
    assert store.last_error is None


def test_load_failure_leaves_empty_collection(collection):
    store = _loaded(BrokenGateway(collection))
    assert store.leads == []
    assert store.last_error == "relation \"leads\" does not exist"
    assert store.loading is False


def test_loading_flag_is_set_while_fetching(flaky):
    async def scenario():
        store = PipelineStore(flaky)
        seen = []
        original = flaky.fetch_all

        async def spying_fetch():
            seen.append(store.loading)
            return await original()

        flaky.fetch_all = spying_fetch
        await store.load()
        return seen, store.loading

    seen, after = asyncio.run(scenario())
    assert seen == [True]
    assert after is False


def test_open_detail_unknown_id(gateway):
    store = _loaded(gateway)
    with pytest.raises(KeyError):
        store.open_detail("missing")


# ---------------------------------------------------------------------------
# Optimistic status changes
# ---------------------------------------------------------------------------

def test_status_change_is_visible_before_backend_confirms(flaky):
    store = _loaded(flaky)

    async def scenario():
        flaky.gate = asyncio.Event()
        task = asyncio.create_task(store.set_status("3", LeadStatus.INTERVIEWING))
        await asyncio.sleep(0)
        seen = store.get("3").status
        pending = not task.done()
        flaky.gate.set()
        result = await task
        return seen, pending, result

    seen, pending, result = asyncio.run(scenario())
    assert pending
    assert seen == LeadStatus.INTERVIEWING
    assert result.success
    assert store.get("3").status == LeadStatus.INTERVIEWING
    assert flaky.calls == [("update", "3")]


def test_status_change_persists(gateway, collection):
    store = _loaded(gateway)
    asyncio.run(store.set_status("2", "Formation"))
    assert store.get("2").status == LeadStatus.FORMATION
    assert next(lead for lead in collection.leads if lead.id == "2").status == LeadStatus.FORMATION


def test_rejected_status_change_rolls_back_to_fresh_load(flaky, collection):
    store = _loaded(flaky)
    flaky.fail_ids = {"2"}

    result = asyncio.run(store.set_status("2", LeadStatus.REJECTED))

    assert result.success is False
    assert result.error == "row is locked"
    assert store.leads == collection.snapshot()
    assert store.get("2").status == LeadStatus.LEAD
    assert flaky.fetches == 2


def test_status_change_does_not_touch_other_leads(gateway):
    store = _loaded(gateway)
    before = {lead.id: lead.status for lead in store.leads if lead.id != "5"}
    asyncio.run(store.set_status("5", LeadStatus.RECRUITER))
    assert {lead.id: lead.status for lead in store.leads if lead.id != "5"} == before


def test_update_fields_validates_tasks(gateway, collection):
    store = _loaded(gateway)

    result = asyncio.run(store.update_fields("2", {"tasks": [{"text": "Call back"}]}))

    assert result.success
    local = store.get("2").tasks[0]
    assert isinstance(local, Task)
    assert local.id and local.is_completed is False
    remote = next(lead for lead in collection.leads if lead.id == "2").tasks[0]
    assert remote.id == local.id


def test_update_fields_with_follow_up_date(gateway, collection):
    store = _loaded(gateway)
    when = NOW + timedelta(days=2)

    asyncio.run(store.update_fields("3", {"next_follow_up": when, "bio": "Call after exams"}))

    assert store.get("3").next_follow_up == when
    assert store.get("3").bio == "Call after exams"
    assert next(lead for lead in collection.leads if lead.id == "3").next_follow_up == when


def test_update_fields_failure_reloads(flaky, collection):
    store = _loaded(flaky)
    flaky.fail_ids = {"2"}

    result = asyncio.run(store.update_fields("2", {"tasks": [{"text": "never stored"}]}))

    assert result.success is False
    assert store.get("2").tasks == []
    assert store.leads == collection.snapshot()


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------

def test_batch_delete_calls_once_per_unique_id(flaky, collection):
    store = _loaded(flaky)
    outcome = asyncio.run(store.batch_delete(["1", "3", "1"]))

    assert flaky.calls == [("delete", "1"), ("delete", "3")]
    assert outcome.ok
    assert outcome.succeeded == ["1", "3"]
    assert sorted(_ids(store)) == ["2", "4", "5"]
    assert len(collection) == 3


def test_batch_delete_is_optimistic(flaky):
    store = _loaded(flaky)

    async def scenario():
        flaky.gate = asyncio.Event()
        task = asyncio.create_task(store.batch_delete(["2", "4"]))
        await asyncio.sleep(0)
        seen = sorted(_ids(store))
        flaky.gate.set()
        await task
        return seen

    assert asyncio.run(scenario()) == ["1", "3", "5"]


def test_batch_delete_restores_only_failed_ids(flaky):
    store = _loaded(flaky)
    flaky.fail_ids = {"3"}

    outcome = asyncio.run(store.batch_delete(["1", "3"]))

    assert outcome.succeeded == ["1"]
    assert outcome.failed == {"3": "row is locked"}
    assert not outcome.ok
    assert sorted(_ids(store)) == ["2", "3", "4", "5"]


def test_batch_status_reconciles_failed_ids(flaky):
    store = _loaded(flaky)
    flaky.fail_ids = {"2"}

    outcome = asyncio.run(store.batch_set_status(["2", "5"], LeadStatus.REJECTED))

    assert outcome.succeeded == ["5"]
    assert list(outcome.failed) == ["2"]
    assert store.get("2").status == LeadStatus.LEAD
    assert store.get("5").status == LeadStatus.REJECTED
    assert flaky.calls == [("update", "2"), ("update", "5")]


def test_batch_status_drops_ids_gone_remotely(flaky, collection):
    store = _loaded(flaky)
    collection.remove("2")
    flaky.fail_ids = {"2"}

    asyncio.run(store.batch_set_status(["2"], LeadStatus.FORMATION))

    assert store.get("2") is None


def test_batch_reconcile_keeps_unrelated_local_state(flaky, collection):
    store = _loaded(flaky)
    # Simulate another client changing lead 4 after our load
    collection.patch("4", {"bio": "changed elsewhere"})
    flaky.fail_ids = {"2"}

    asyncio.run(store.batch_set_status(["2"], LeadStatus.FORMATION))

    assert store.get("4").bio != "changed elsewhere"


# ---------------------------------------------------------------------------
# Detail editor
# ---------------------------------------------------------------------------

def test_editor_works_on_a_copy(gateway):
    store = _loaded(gateway)
    editor = store.open_detail("1")
    editor.set_bio("edited")
    editor.add_task("Book interview room")
    assert store.get("1").bio != "edited"
    assert len(store.get("1").tasks) == 1


def test_editor_add_task_prepends_and_ignores_blank():
    editor = DetailEditor(Lead(full_name="A"))
    assert editor.add_task("   ") is None
    first = editor.add_task("first")
    second = editor.add_task("  second  ")
    assert [t.text for t in editor.lead.tasks] == ["second", "first"]
    assert first.id != second.id
    assert second.is_completed is False


def test_editor_toggle_and_remove(gateway):
    store = _loaded(gateway)
    editor = store.open_detail("1")
    editor.toggle_task("t1")
    assert editor.lead.tasks[0].is_completed is True
    editor.toggle_task("t1")
    assert editor.lead.tasks[0].is_completed is False
    editor.remove_task("t1")
    assert editor.lead.tasks == []
    editor.remove_task("missing")


def test_editor_overrides(gateway):
    store = _loaded(gateway)
    editor = store.open_detail("3")
    editor.set_priority("High")
    editor.set_score(130)
    editor.set_follow_up(NOW + timedelta(days=3))
    assert editor.lead.priority == Priority.HIGH
    assert editor.lead.score == 100
    assert editor.lead.next_follow_up == NOW + timedelta(days=3)


def test_save_detail_writes_whole_record(gateway, collection):
    store = _loaded(gateway)
    editor = store.open_detail("5")
    editor.add_task("Send contract")
    editor.set_score(88)
    editor.set_priority(Priority.HIGH)

    result = asyncio.run(editor.save(store))

    assert result.success
    local = store.get("5")
    remote = next(lead for lead in collection.leads if lead.id == "5")
    for lead in (local, remote):
        assert lead.score == 88
        assert lead.priority == Priority.HIGH
        assert [t.text for t in lead.tasks] == ["Send contract"]
    assert remote.created_at == local.created_at


def test_save_detail_keeps_created_at(gateway, collection):
    store = _loaded(gateway)
    original = store.get("5").created_at
    edited = store.get("5").model_copy(update={"created_at": NOW + timedelta(days=30), "bio": "edited"})

    asyncio.run(store.save_detail(edited))

    assert store.get("5").created_at == original
    assert store.get("5").bio == "edited"
    assert store.leads == collection.snapshot()


def test_save_detail_failure_reloads(flaky, collection):
    store = _loaded(flaky)
    flaky.fail_ids = {"5"}
    editor = store.open_detail("5")
    editor.set_bio("never stored")

    result = asyncio.run(editor.save(store))

    assert result.success is False
    assert store.get("5").bio == "Energetic and ready to learn."
    assert store.leads == collection.snapshot()


def test_stores_on_separate_collections_are_independent():
    a = PipelineStore(InMemoryGateway(InMemoryLeadCollection()))
    b = PipelineStore(InMemoryGateway(InMemoryLeadCollection()))
    asyncio.run(a.load())
    asyncio.run(b.load())
    assert a.leads == [] and b.leads == []
