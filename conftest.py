"""Shared fixtures: in-memory collaborators for the feed, slideshow and pipeline."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.bus.event_bus import EventBus
from core.interfaces.inference import InferenceResult
from core.interfaces.storage import NotFound
from core.models.image import ImageDescriptor

BASE_TIME = datetime(2025, 3, 17, 8, 0, tzinfo=timezone.utc)
FEED_PREFIX = "acme/cam-1/2025-03-17/"


def make_image(key: str, minutes: int) -> ImageDescriptor:
    return ImageDescriptor(key=key, last_modified=BASE_TIME + timedelta(minutes=minutes), size=1024)


def make_images(count: int, prefix: str = FEED_PREFIX):
    """img000 is the oldest, img<count-1> the newest."""
    return [make_image(f"{prefix}img{i:03d}.jpg", i) for i in range(count)]


async def drain(rounds: int = 10) -> None:
    """Let pending tasks run until they block on something real."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeStorage:
    """Async stand-in for StorageClient.

    ``listings`` maps prefix -> image list (or an exception to raise),
    ``gates`` holds asyncio.Events, keyed by image key or prefix, that a
    fetch or listing waits on before returning.
    """

    def __init__(self):
        self.bucket = "test-bucket"
        self.provider_name = "fake"
        self.listings = {}
        self.folders = {}
        self.missing = set()
        self.fetch_errors = {}
        self.gates = {}
        self.list_calls = []
        self.fetch_calls = []

    async def list_images(self, prefix):
        self.list_calls.append(prefix)
        gate = self.gates.get(prefix)
        if gate is not None:
            await gate.wait()
        result = self.listings.get(prefix, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def list_folders(self, prefix):
        return list(self.folders.get(prefix, []))

    async def fetch_image_bytes(self, key):
        self.fetch_calls.append(key)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.missing:
            raise NotFound(f"Object not found: {key}")
        if key in self.fetch_errors:
            raise self.fetch_errors[key]
        return b"image:" + key.encode()

    async def check_connection(self):
        return True

    def image_url(self, key):
        return f"http://storage/{key}"


class FakeInference:
    """Async stand-in for InferenceClient keyed on the fetched image."""

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.gates = {}

    async def run_inference(self, image_bytes, model_name, confidence, iou):
        key = image_bytes.decode().split(":", 1)[1]
        self.calls.append((key, model_name, confidence, iou))
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.errors:
            raise self.errors[key]
        return InferenceResult(processed_ref=f"http://processed/{key}", analysis_text=f"analysis of {key}")

    async def model_info(self, model_name):
        return {"model_name": model_name, "description": f"{model_name} description"}


class RecordingSink:
    """Display sink that records every call."""

    def __init__(self):
        self.calls = []

    def show_raw(self, key, raw_ref):
        self.calls.append(("raw", key, raw_ref))

    def show_analysis(self, key, processed_ref, analysis_text):
        self.calls.append(("analysis", key, processed_ref, analysis_text))

    def show_analysis_error(self, key, message):
        self.calls.append(("error", key, message))

    def show_analysis_skipped(self, key, message):
        self.calls.append(("skipped", key, message))

    def on_image_missing(self, key, message):
        self.calls.append(("missing", key, message))

    def of(self, kind):
        return [call for call in self.calls if call[0] == kind]


class FakePipeline:
    """Pipeline stand-in for controller tests: shows the raw image, nothing else."""

    def __init__(self):
        self.sink = None
        self.processed = []
        self.invalidated = 0
        self.fail_next = False

    def set_sink(self, sink):
        self.sink = sink

    def process(self, key):
        self.processed.append(key)
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("pipeline exploded")
        self.sink.show_raw(key, f"http://storage/{key}")
        return None

    def invalidate(self):
        self.invalidated += 1


class RecordingListener:
    """Poller listener that records significant updates."""

    def __init__(self):
        self.loaded = []
        self.grew = []
        self.fail = False

    def on_list_loaded(self, images):
        if self.fail:
            raise RuntimeError("listener exploded")
        self.loaded.append(images)

    def on_list_grew(self, images):
        if self.fail:
            raise RuntimeError("listener exploded")
        self.grew.append(images)


@pytest.fixture
def bus():
    event_bus = EventBus()
    event_bus.reset()
    yield event_bus
    event_bus.reset()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def inference():
    return FakeInference()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fake_pipeline():
    return FakePipeline()


@pytest.fixture
def listener():
    return RecordingListener()
