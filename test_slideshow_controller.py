"""Tests for the slideshow controller state machine."""

import asyncio
import random

import pytest

from conftest import make_images
from core.interfaces.events import EventType
from core.models.config import SlideshowConfig
from core.models.slideshow import SlideshowMode
from modules.slideshow.controller import SlideshowController


def make_controller(pipeline, bus, mode="latest_only", auto_advance=True, duration=10.0):
    config = SlideshowConfig(slide_duration_seconds=duration, auto_advance=auto_advance, mode=mode)
    return SlideshowController(pipeline, config, event_bus=bus)


@pytest.fixture
def controller(fake_pipeline, bus):
    return make_controller(fake_pipeline, bus)


def test_controller_registers_as_pipeline_sink(controller, fake_pipeline):
    assert fake_pipeline.sink is controller


def test_navigation_is_noop_when_empty(controller, fake_pipeline):
    assert controller.next() is False
    assert controller.previous() is False
    assert controller.state.current_index is None
    assert fake_pipeline.processed == []


def test_navigation_is_noop_with_single_image(controller):
    controller.on_list_loaded(make_images(1))

    assert controller.next() is False
    assert controller.previous() is False
    assert controller.state.current_index == 0


def test_loaded_list_is_sorted_and_newest_shown(controller, fake_pipeline, bus):
    images = make_images(4)
    shuffled = images[:]
    random.Random(7).shuffle(shuffled)

    controller.on_list_loaded(shuffled)

    assert [image.key for image in controller.images] == [image.key for image in reversed(images)]
    assert controller.state.current_index == 0
    assert fake_pipeline.processed == [images[-1].key]
    assert controller.display.key == images[-1].key

    index_events = bus.get_history(EventType.INDEX_CHANGED)
    assert index_events[0].data == {"index": 0, "total": 4, "key": images[-1].key}


def test_next_and_previous_wrap_around(controller):
    controller.on_list_loaded(make_images(5))

    controller.next()
    assert controller.state.current_index == 1
    controller.previous()
    assert controller.state.current_index == 0
    controller.previous()
    assert controller.state.current_index == 4
    controller.next()
    assert controller.state.current_index == 0


def test_next_then_previous_returns_to_same_image(controller):
    controller.on_list_loaded(make_images(6))
    for _ in range(3):
        controller.next()
    before = controller.current_image

    controller.next()
    controller.previous()

    assert controller.current_image == before


def test_latest_only_growth_jumps_to_newest(controller, fake_pipeline):
    controller.on_list_loaded(make_images(5))
    for _ in range(3):
        controller.next()
    assert controller.state.current_index == 3

    grown = make_images(6)
    controller.on_list_grew(grown)

    assert controller.state.current_index == 0
    assert controller.current_image.key == grown[-1].key
    assert controller.state.is_auto_playing is False
    assert fake_pipeline.processed[-1] == grown[-1].key
    assert len(controller.images) == 6


@pytest.mark.asyncio
async def test_continuous_growth_keeps_current_image(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous", auto_advance=False)
    controller.on_list_loaded(make_images(5))
    controller.next()
    controller.next()
    current = controller.current_image
    processed = len(fake_pipeline.processed)

    controller.on_list_grew(make_images(6))

    assert controller.current_image == current
    assert controller.state.current_index == 3
    assert len(fake_pipeline.processed) == processed


@pytest.mark.asyncio
async def test_continuous_load_starts_auto_play(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")

    controller.on_list_loaded(make_images(3))

    assert controller.state.is_auto_playing is True
    assert controller.timer_active is True
    assert bus.get_history(EventType.AUTOPLAY_CHANGED)[0].data == {"enabled": True}
    controller.reset()


@pytest.mark.asyncio
async def test_auto_play_needs_more_than_one_image(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")

    controller.on_list_loaded(make_images(1))

    assert controller.state.is_auto_playing is False
    assert controller.toggle_auto_play() is False
    assert controller.timer_active is False


@pytest.mark.asyncio
async def test_timer_advances_and_pause_stops_it(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous", duration=0.05)
    controller.on_list_loaded(make_images(3))
    assert controller.state.current_index == 0

    await asyncio.sleep(0.075)
    assert controller.state.current_index == 1

    assert controller.toggle_auto_play() is False
    assert controller.timer_active is False

    await asyncio.sleep(0.1)
    assert controller.state.current_index == 1


@pytest.mark.asyncio
async def test_manual_navigation_restarts_the_timer(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous", duration=0.05)
    controller.on_list_loaded(make_images(4))

    await asyncio.sleep(0.03)
    controller.next()
    await asyncio.sleep(0.03)

    # Only the manual step happened; the timer was pushed back
    assert controller.state.current_index == 1
    assert controller.timer_active is True

    await asyncio.sleep(0.04)
    assert controller.state.current_index == 2
    controller.reset()


@pytest.mark.asyncio
async def test_timer_keeps_running_after_a_failed_advance(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous", duration=0.03)
    controller.on_list_loaded(make_images(3))

    fake_pipeline.fail_next = True
    await asyncio.sleep(0.045)
    assert controller.timer_active is True

    await asyncio.sleep(0.03)
    assert controller.state.current_index == 2
    controller.reset()


@pytest.mark.asyncio
async def test_user_pause_survives_growth(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")
    controller.on_list_loaded(make_images(3))
    controller.toggle_auto_play()

    controller.on_list_grew(make_images(4))

    assert controller.state.is_auto_playing is False


@pytest.mark.asyncio
async def test_growth_to_two_images_starts_auto_play(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")
    controller.on_list_loaded(make_images(1))
    assert controller.state.is_auto_playing is False

    controller.on_list_grew(make_images(2))

    assert controller.state.is_auto_playing is True
    controller.reset()


def test_toggle_ignored_in_latest_only(controller, bus):
    controller.on_list_loaded(make_images(3))

    assert controller.toggle_auto_play() is False
    assert bus.get_history(EventType.AUTOPLAY_CHANGED) == []


def test_keyboard_navigation(controller):
    controller.on_list_loaded(make_images(3))

    assert controller.handle_key("ArrowRight") is True
    assert controller.state.current_index == 1
    assert controller.handle_key("ArrowLeft") is True
    assert controller.state.current_index == 0
    assert controller.handle_key("left") is True
    assert controller.state.current_index == 2


def test_keyboard_ignored_while_typing(controller):
    controller.on_list_loaded(make_images(3))

    assert controller.handle_key("ArrowRight", text_input_focused=True) is False
    assert controller.state.current_index == 0
    assert controller.handle_key("x") is False


@pytest.mark.asyncio
async def test_space_toggles_auto_play(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")
    controller.on_list_loaded(make_images(3))

    assert controller.handle_key(" ") is True
    assert controller.state.is_auto_playing is False
    assert controller.handle_key("Space") is True
    assert controller.state.is_auto_playing is True
    controller.reset()


@pytest.mark.asyncio
async def test_switch_to_latest_only_stops_and_jumps(fake_pipeline, bus):
    controller = make_controller(fake_pipeline, bus, mode="continuous")
    controller.on_list_loaded(make_images(4))
    controller.next()

    controller.set_mode("latest-only")

    assert controller.state.mode == SlideshowMode.LATEST_ONLY
    assert controller.state.is_auto_playing is False
    assert controller.timer_active is False
    assert controller.state.current_index == 0


@pytest.mark.asyncio
async def test_switch_to_continuous_starts_auto_play(controller):
    controller.on_list_loaded(make_images(3))

    controller.set_mode(SlideshowMode.CONTINUOUS)

    assert controller.state.is_auto_playing is True
    controller.reset()


def test_slide_duration_must_be_positive(controller):
    with pytest.raises(ValueError):
        controller.set_slide_duration(0)


def test_reset_returns_to_empty(controller, bus):
    controller.on_list_loaded(make_images(3))
    controller.show_analysis(controller.current_image.key, "http://processed/x", "text")

    controller.reset()

    assert controller.state.current_index is None
    assert controller.images == []
    assert controller.display.key is None
    assert controller.display.analysis_text is None
    assert bus.get_history(EventType.DISPLAY_CLEARED)


def test_analysis_for_other_image_is_ignored(controller):
    controller.on_list_loaded(make_images(3))
    other = controller.images[1].key

    controller.show_analysis(other, "http://processed/other", "not for you")

    assert controller.display.analysis_text is None


def test_analysis_fills_display(controller, bus):
    controller.on_list_loaded(make_images(2))
    key = controller.current_image.key
    assert controller.display.is_loading is True

    controller.show_analysis(key, "http://processed/x", "2 people detected")

    assert controller.display.processed_ref == "http://processed/x"
    assert controller.display.analysis_text == "2 people detected"
    assert controller.display.is_loading is False
    assert bus.get_history(EventType.ANALYSIS_READY)[0].data["key"] == key


def test_skipped_and_error_messages_replace_each_other(controller):
    controller.on_list_loaded(make_images(2))
    key = controller.current_image.key

    controller.show_analysis_skipped(key, "AI analysis disabled")
    assert controller.display.placeholder == "AI analysis disabled"

    controller.show_analysis_error(key, "Error processing image: boom")
    assert controller.display.error == "Error processing image: boom"
    assert controller.display.placeholder is None


def test_missing_image_advances(controller):
    controller.on_list_loaded(make_images(3))
    missing = controller.current_image.key

    controller.on_image_missing(missing, "Image no longer available")

    assert controller.state.current_index == 1
    assert controller.current_image.key != missing


def test_missing_images_everywhere_clears_display(controller, bus):
    controller.on_list_loaded(make_images(3))

    for _ in range(3):
        controller.on_image_missing(controller.current_image.key, "Image no longer available")

    assert controller.display.key is None
    assert bus.get_history(EventType.DISPLAY_CLEARED)


def test_stats_reflect_state(controller):
    controller.on_list_loaded(make_images(3))

    stats = controller.get_stats()

    assert stats["current_index"] == 0
    assert stats["total"] == 3
    assert stats["mode"] == "latest_only"
    assert stats["display"]["is_loading"] is True
