"""
Tests for push de-duplication and the toast/sound interruption policy.
"""
import asyncio

import pytest

from daroui_notify.models.enums import ToastType
from daroui_notify.realtime.events import ChannelEvents
from daroui_notify.realtime.sound import SoundTrigger
from daroui_notify.services.delivery import DeliveryOutcome, DeliveryPipeline
from daroui_notify.services.notifications import NotificationStore
from tests.fakes import RecordingPlayer, StubApi, make_record, wait_until


@pytest.fixture
def stub_api():
    return StubApi([make_record(1), make_record(2, is_read=True)], unread=1)


@pytest.fixture
def store(stub_api):
    return NotificationStore(stub_api)


@pytest.fixture
def pipeline(store, toasts, sound):
    return DeliveryPipeline(store, toasts, sound)


class TestDelivery:

    async def test_critical_push_on_loaded_store(self, store, pipeline, toasts, player):
        await store.load_initial()

        outcome = pipeline.handle(make_record(3, priority="critical"))

        assert outcome is DeliveryOutcome.delivered
        assert [n.id for n in store.notifications] == [3, 1, 2]
        assert store.unread_count == 2
        assert len(toasts) == 1
        assert len(player.calls) == 1

    async def test_same_push_twice_surfaces_once(self, store, pipeline, toasts, player):
        await store.load_initial()
        record = make_record(3, priority="critical")

        first = pipeline.handle(record)
        second = pipeline.handle(record)

        assert (first, second) == (DeliveryOutcome.delivered, DeliveryOutcome.duplicate)
        assert [n.id for n in store.notifications].count(3) == 1
        assert store.unread_count == 2
        assert len(toasts) == 1
        assert len(player.calls) == 1

    async def test_toast_carries_title_and_message(self, store, toasts, sound):
        pipeline = DeliveryPipeline(store, toasts, sound, toast_duration=2.5)
        await store.load_initial()

        pipeline.handle(make_record(3, title="New order", message="Table 7"))

        toast = toasts.active()[0]
        assert toast.message == "New order: Table 7"
        assert toast.type is ToastType.success
        assert toast.duration == 2.5

    async def test_medium_toasts_without_sound(self, store, pipeline, toasts, player):
        await store.load_initial()

        pipeline.handle(make_record(3, priority="medium"))

        assert len(toasts) == 1
        assert player.calls == []

    async def test_low_updates_silently(self, store, pipeline, toasts, player):
        await store.load_initial()

        pipeline.handle(make_record(3, priority="low"))

        assert store.contains(3)
        assert store.unread_count == 2
        assert len(toasts) == 0
        assert player.calls == []

    async def test_history_never_toasts(self, store, pipeline, toasts, player):
        await store.load_initial()

        outcome = pipeline.handle(make_record(1, priority="critical"))

        assert outcome is DeliveryOutcome.duplicate
        assert pipeline.surfaced_ids == {1, 2}
        assert len(toasts) == 0
        assert player.calls == []

    async def test_redelivery_after_clear_is_stored_without_toast(self, store, pipeline, toasts, player):
        await store.load_initial()
        pipeline.handle(make_record(3, priority="critical"))

        store.clear()
        outcome = pipeline.handle(make_record(3, priority="critical"))

        assert outcome is DeliveryOutcome.restored
        assert [n.id for n in store.notifications] == [3]
        assert store.unread_count == 1
        assert len(toasts) == 1
        assert len(player.calls) == 1

    async def test_redelivery_after_remove_is_restored(self, store, pipeline, toasts):
        await store.load_initial()
        pipeline.handle(make_record(3))

        assert await store.remove(3) is True
        outcome = pipeline.handle(make_record(3))

        assert outcome is DeliveryOutcome.restored
        assert store.contains(3)
        assert len(toasts) == 1

    async def test_push_before_history_load(self, store, pipeline, toasts):
        """A push that beats the initial load still lands and toasts once."""
        pipeline.handle(make_record(9))

        assert [n.id for n in store.notifications] == [9]
        assert len(toasts) == 1

    async def test_without_sound_trigger(self, store, toasts):
        pipeline = DeliveryPipeline(store, toasts)
        await store.load_initial()

        assert pipeline.handle(make_record(3, priority="critical")) is DeliveryOutcome.delivered
        assert len(toasts) == 1

    async def test_sound_failure_does_not_block_delivery(self, store, toasts):
        broken = SoundTrigger(asset_path="", player=RecordingPlayer(fail_times=5), enabled=True)
        pipeline = DeliveryPipeline(store, toasts, broken)
        await store.load_initial()

        pipeline.handle(make_record(3, priority="critical"))

        assert store.contains(3)
        assert len(toasts) == 1

    async def test_pipeline_as_channel_subscriber(self, store, pipeline):
        events = ChannelEvents()
        events.notification.subscribe(pipeline)
        await store.load_initial()

        events.notification.emit(make_record(4))
        events.notification.emit(make_record(4))

        assert [n.id for n in store.notifications].count(4) == 1

    async def test_push_during_reload_is_kept(self, store, pipeline, stub_api, toasts):
        """A record toasted while history reloads stays in the list afterwards."""
        await store.load_initial()
        stub_api.count_gate = asyncio.Event()

        reload = asyncio.create_task(store.refresh())
        await wait_until(lambda: stub_api.calls.count(("count",)) == 2)
        pipeline.handle(make_record(3, priority="critical"))
        stub_api.count_gate.set()
        await reload

        assert [n.id for n in store.notifications] == [3, 1, 2]
        assert store.unread_count == 2
        assert len(toasts) == 1
