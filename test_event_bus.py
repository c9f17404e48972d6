"""Tests for the event bus and the single-shot timer."""

import asyncio

import pytest

from core.bus.event_bus import DEFAULT_HISTORY_SIZE
from core.interfaces.events import Event, EventType
from core.scheduling.timer import SingleShotTimer


def test_publish_reaches_subscribers(bus):
    received = []
    bus.subscribe(EventType.IMAGE_READY, received.append)

    bus.publish(Event(EventType.IMAGE_READY, data={"raw_ref": "x"}, source="test"))
    bus.publish(Event(EventType.ANALYSIS_READY, data={}, source="test"))

    assert [event.type for event in received] == [EventType.IMAGE_READY]


def test_subscribe_all(bus):
    received = []
    bus.subscribe_all(received.append)

    bus.publish(Event(EventType.POLL_FAILED, data={}))
    bus.publish(Event(EventType.DISPLAY_CLEARED, data={}))

    assert len(received) == 2


def test_handler_errors_do_not_reach_publisher(bus):
    received = []

    def broken(event):
        raise RuntimeError("renderer crashed")

    bus.subscribe(EventType.IMAGE_READY, broken)
    bus.subscribe(EventType.IMAGE_READY, received.append)

    bus.publish(Event(EventType.IMAGE_READY, data={}))

    assert len(received) == 1


def test_handler_may_unsubscribe_itself(bus):
    calls = []

    def once(event):
        calls.append(event)
        bus.unsubscribe(EventType.INDEX_CHANGED, once)

    bus.subscribe(EventType.INDEX_CHANGED, once)
    bus.publish(Event(EventType.INDEX_CHANGED, data={}))
    bus.publish(Event(EventType.INDEX_CHANGED, data={}))

    assert len(calls) == 1
    assert bus.subscriber_count(EventType.INDEX_CHANGED) == 0


def test_history_most_recent_first(bus):
    for index in range(3):
        bus.publish(Event(EventType.INDEX_CHANGED, data={"index": index}))

    history = bus.get_history(EventType.INDEX_CHANGED, limit=2)

    assert [event.data["index"] for event in history] == [2, 1]


@pytest.mark.asyncio
async def test_timer_fires_once():
    fired = []
    timer = SingleShotTimer("test")

    timer.schedule(0.01, fired.append, "tick")
    assert timer.active

    await asyncio.sleep(0.03)
    assert fired == ["tick"]
    assert not timer.active
    assert timer.fire_count == 1


@pytest.mark.asyncio
async def test_rescheduling_replaces_pending_callback():
    fired = []
    timer = SingleShotTimer("test")

    timer.schedule(0.01, fired.append, "first")
    timer.schedule(0.02, fired.append, "second")
    await asyncio.sleep(0.04)

    assert fired == ["second"]


@pytest.mark.asyncio
async def test_cancel():
    fired = []
    timer = SingleShotTimer("test")
    timer.schedule(0.01, fired.append, "tick")

    assert timer.cancel() is True
    assert timer.cancel() is False
    await asyncio.sleep(0.02)

    assert fired == []


@pytest.mark.asyncio
async def test_callback_can_reschedule_itself():
    timer = SingleShotTimer("test")
    ticks = []

    def tick():
        ticks.append(len(ticks))
        if len(ticks) < 3:
            timer.schedule(0.005, tick)

    timer.schedule(0.005, tick)
    await asyncio.sleep(0.05)

    assert ticks == [0, 1, 2]
    assert not timer.active


@pytest.mark.asyncio
async def test_callback_errors_are_contained():
    timer = SingleShotTimer("test")

    def broken():
        raise RuntimeError("boom")

    timer.schedule(0.005, broken)
    await asyncio.sleep(0.02)

    assert timer.fire_count == 1
    assert not timer.active


def test_latest_returns_current_display_event(bus):
    bus.publish(Event(EventType.IMAGE_READY, data={"key": "img000.jpg"}))
    bus.publish(Event(EventType.INDEX_CHANGED, data={"index": 1}))
    bus.publish(Event(EventType.IMAGE_READY, data={"key": "img001.jpg"}))

    assert bus.latest(EventType.IMAGE_READY).data["key"] == "img001.jpg"
    assert bus.latest(EventType.ANALYSIS_READY) is None


def test_history_is_bounded(bus):
    for index in range(DEFAULT_HISTORY_SIZE + 10):
        bus.publish(Event(EventType.LIST_UPDATED, data={"count": index}))

    history = bus.get_history(limit=DEFAULT_HISTORY_SIZE + 10)

    assert len(history) == DEFAULT_HISTORY_SIZE
    assert history[-1].data["count"] == 10
