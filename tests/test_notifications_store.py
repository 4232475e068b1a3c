"""
Tests for the session notification store: initial load, optimistic read
mutations, removal and unread-count reconciliation.
"""
import asyncio
import logging

import pytest
from pydantic import ValidationError

from daroui_notify.models.enums import NotificationFilter, StoreState
from daroui_notify.services.notifications import NotificationStore
from tests.fakes import StubApi, make_record, notification_payload, wait_until


def eight_records():
    """8 records, ids 8..1 newest first; 5 unread."""
    return [make_record(i, is_read=i <= 3) for i in range(8, 0, -1)]


@pytest.fixture
def stub_api():
    return StubApi(eight_records())


@pytest.fixture
async def store(stub_api):
    store = NotificationStore(stub_api)
    await store.load_initial()
    return store


# ============================================================
# Loading
# ============================================================

class TestLoad:

    async def test_initial_state(self, stub_api):
        store = NotificationStore(stub_api)

        assert store.state is StoreState.uninitialized
        assert store.loading
        assert store.notifications == ()
        assert store.unread_count == 0

    async def test_load_initial(self, store, stub_api):
        assert store.state is StoreState.ready
        assert not store.loading
        assert [n.id for n in store.notifications] == [8, 7, 6, 5, 4, 3, 2, 1]
        assert store.unread_count == 5
        assert ("list", 50) in stub_api.calls

    async def test_history_limit_is_forwarded(self, stub_api):
        store = NotificationStore(stub_api, history_limit=10)
        await store.load_initial()

        assert ("list", 10) in stub_api.calls

    async def test_server_count_wins_over_page(self):
        """The badge reflects every unread notification, not just the loaded page."""
        store = NotificationStore(StubApi([make_record(1)], unread=42))
        await store.load_initial()

        assert store.unread_count == 42

    async def test_list_failure_fails_soft(self, stub_api):
        stub_api.fail = {"list", "count"}
        store = NotificationStore(stub_api)

        await store.load_initial()

        assert store.state is StoreState.ready
        assert store.notifications == ()
        assert store.unread_count == 0

    async def test_count_failure_derives_from_list(self, stub_api):
        stub_api.fail = {"count"}
        store = NotificationStore(stub_api)

        await store.load_initial()

        assert store.unread_count == 5

    async def test_duplicate_ids_in_history_are_collapsed(self):
        store = NotificationStore(StubApi([make_record(2), make_record(2), make_record(1)]))
        await store.load_initial()

        assert [n.id for n in store.notifications] == [2, 1]

    async def test_loaded_hook_receives_ids(self, stub_api):
        store = NotificationStore(stub_api)
        seen = []
        store.loaded.subscribe(seen.append)

        await store.load_initial()

        assert seen == [(8, 7, 6, 5, 4, 3, 2, 1)]

    async def test_refresh_reloads(self, store, stub_api):
        stub_api.records.insert(0, make_record(9))

        await store.refresh()

        assert store.notifications[0].id == 9
        assert store.unread_count == 6

    async def test_push_already_in_fetched_page_is_not_doubled(self, store, stub_api):
        stub_api.count_gate = asyncio.Event()
        stub_api.records.insert(0, make_record(9))

        reload = asyncio.create_task(store.refresh())
        await wait_until(lambda: stub_api.calls.count(("count",)) == 2)
        store.insert(make_record(9))
        stub_api.count_gate.set()
        await reload

        assert [n.id for n in store.notifications] == [9, 8, 7, 6, 5, 4, 3, 2, 1]
        assert store.unread_count == 6

    async def test_push_removed_during_reload_stays_removed(self, store, stub_api):
        stub_api.count_gate = asyncio.Event()

        reload = asyncio.create_task(store.refresh())
        await wait_until(lambda: stub_api.calls.count(("count",)) == 2)
        store.insert(make_record(9))
        assert await store.remove(9) is True
        stub_api.count_gate.set()
        await reload

        assert not store.contains(9)
        assert store.unread_count == 5

    async def test_clear_returns_to_uninitialized(self, store):
        store.clear()

        assert store.state is StoreState.uninitialized
        assert store.notifications == ()
        assert store.unread_count == 0


# ============================================================
# Read mutations
# ============================================================

class TestMarkRead:

    async def test_mark_all_read_is_optimistic(self, store, stub_api):
        """All records read and badge zero before the server answers."""
        stub_api.gate = asyncio.Event()

        task = asyncio.create_task(store.mark_all_read())
        await wait_until(lambda: ("mark_all_read",) in stub_api.calls)

        assert all(n.is_read for n in store.notifications)
        assert len(store.notifications) == 8
        assert store.unread_count == 0
        assert not task.done()

        stub_api.gate.set()
        await task

        assert store.unread_count == 0

    async def test_mark_read_is_optimistic(self, store, stub_api):
        stub_api.gate = asyncio.Event()

        task = asyncio.create_task(store.mark_read(8))
        await wait_until(lambda: ("mark_read", 8) in stub_api.calls)

        assert store.get(8).is_read
        assert store.unread_count == 4

        stub_api.gate.set()
        await task

    async def test_mark_read_already_read_is_noop(self, store, stub_api):
        await store.mark_read(1)

        assert store.unread_count == 5
        assert ("mark_read", 1) not in stub_api.calls

    async def test_mark_read_unknown_id_is_noop(self, store, stub_api):
        await store.mark_read(404)

        assert store.unread_count == 5
        assert ("mark_read", 404) not in stub_api.calls

    async def test_mark_read_failure_keeps_read_and_reconciles_count(self, store, stub_api):
        stub_api.fail = {"mark_read"}
        stub_api.unread = 5

        await store.mark_read(8)

        assert store.get(8).is_read
        assert store.unread_count == 5
        assert stub_api.calls[-1] == ("count",)

    async def test_mark_all_read_failure_reconciles_count(self, store, stub_api):
        stub_api.fail = {"mark_all_read"}
        stub_api.unread = 5

        await store.mark_all_read()

        assert all(n.is_read for n in store.notifications)
        assert store.unread_count == 5

    async def test_read_state_survives_reload(self, store, stub_api):
        """A record read this session never flips back to unread."""
        await store.mark_read(8)

        await store.load_initial()

        assert store.get(8).is_read

    async def test_read_state_survives_redelivery(self, store):
        await store.mark_read(8)
        await store.remove(8)

        store.insert(make_record(8))

        assert store.get(8).is_read
        assert store.unread_count == 4

    async def test_records_are_immutable(self, store):
        record = store.get(8)

        with pytest.raises(ValidationError):
            record.is_read = True

        assert store.unread_count == 5

    async def test_unread_count_matches_list(self, store):
        """Count equals unread records through a mixed sequence of operations."""
        store.insert(make_record(9))
        await store.mark_read(9)
        await store.mark_read(7)
        store.insert(make_record(10, is_read=True))
        await store.remove(6)

        unread = sum(1 for n in store.notifications if not n.is_read)
        assert store.unread_count == unread == 3


# ============================================================
# Insert / remove
# ============================================================

class TestInsertRemove:

    async def test_insert_prepends_and_counts(self, store):
        assert store.insert(make_record(9)) is True

        assert store.notifications[0].id == 9
        assert store.unread_count == 6

    async def test_insert_existing_id_is_rejected(self, store):
        assert store.insert(make_record(8)) is False

        assert len(store.notifications) == 8
        assert store.unread_count == 5

    async def test_insert_read_record_keeps_count(self, store):
        store.insert(make_record(9, is_read=True))

        assert store.unread_count == 5

    async def test_remove_unread(self, store, stub_api):
        assert await store.remove(8) is True

        assert not store.contains(8)
        assert store.unread_count == 4
        assert ("delete", 8) in stub_api.calls

    async def test_remove_read_keeps_count(self, store):
        assert await store.remove(1) is True

        assert store.unread_count == 5

    async def test_remove_failure_keeps_record(self, store, stub_api):
        stub_api.fail = {"delete"}

        assert await store.remove(8) is False

        assert store.contains(8)
        assert store.unread_count == 5

    async def test_changed_hook_fires(self, store):
        calls = []
        store.changed.subscribe(lambda: calls.append(1))

        store.insert(make_record(9))
        await store.mark_read(9)
        await store.remove(9)

        assert len(calls) == 3


# ============================================================
# Reconciliation and filters
# ============================================================

class TestReconcile:

    async def test_refresh_unread_count_overwrites_local(self, store, stub_api):
        stub_api.unread = 11

        await store.refresh_unread_count()

        assert store.unread_count == 11

    async def test_refresh_unread_count_failure_keeps_local(self, store, stub_api):
        stub_api.fail = {"count"}

        await store.refresh_unread_count()

        assert store.unread_count == 5

    async def test_negative_count_is_clamped(self, store, stub_api):
        stub_api.unread = -3

        await store.refresh_unread_count()

        assert store.unread_count == 0


class TestFilters:

    @pytest.fixture
    async def mixed(self):
        store = NotificationStore(StubApi([
            make_record(4, priority="critical"),
            make_record(3, priority="critical", is_read=True),
            make_record(2, priority="medium"),
            make_record(1, priority="low", is_read=True),
        ]))
        await store.load_initial()
        return store

    async def test_unread(self, mixed):
        assert [n.id for n in mixed.filtered(NotificationFilter.unread)] == [4, 2]

    async def test_by_priority(self, mixed):
        assert [n.id for n in mixed.filtered(NotificationFilter.critical)] == [4, 3]
        assert [n.id for n in mixed.filtered(NotificationFilter.medium)] == [2]
        assert [n.id for n in mixed.filtered(NotificationFilter.low)] == [1]

    async def test_all(self, mixed):
        assert len(mixed.filtered()) == 4

    async def test_critical_unread_count(self, mixed):
        assert mixed.critical_unread_count == 1


class TestFailureLogging:

    async def test_failed_mutation_logs_one_error(self, api, backend, caplog):
        """The REST layer reports the failure; the store only notes its fallback."""
        backend.add(notification_payload(1), notification_payload(2, is_read=True))
        store = NotificationStore(api)
        await store.load_initial()
        backend.fail = {"mark_read"}
        caplog.set_level(logging.DEBUG, logger="daroui")

        await store.mark_read(1)

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert errors[0].name == "daroui.api"
        assert any(r.name == "daroui.notifications" and r.levelno == logging.WARNING for r in caplog.records)
        assert store.get(1).is_read

    async def test_failed_load_logs_one_error_per_call(self, api, backend, caplog):
        backend.fail = {"list", "count"}
        caplog.set_level(logging.DEBUG, logger="daroui")

        await NotificationStore(api).load_initial()

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 2
        assert all(r.name == "daroui.api" for r in errors)
