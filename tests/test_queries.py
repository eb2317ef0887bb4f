from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

import pytest

from datastore.reading_store import ReadingStore
from errors import StoreUnavailableError
from models.records import Reading
from services.queries import ReadingQueryService

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _reading(device_id: str, minutes: int, temperature: float = 20.0) -> Reading:
    return Reading(
        device_id=device_id,
        device_name=f"Room {device_id}",
        temperature=temperature,
        humidity=50.0,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture()
def store() -> ReadingStore:
    return ReadingStore(name="readings")


@pytest.fixture()
def service(store: ReadingStore) -> Iterator[ReadingQueryService]:
    query_service = ReadingQueryService(store=store, workers=2, timeout=5.0)
    yield query_service
    query_service.shutdown()


def test_latest_per_device_returns_one_newest_row_per_device(store, service) -> None:
    store.insert_batch(
        [
            _reading("DEV001", 0),
            _reading("DEV001", 90),
            _reading("DEV002", 30),
            _reading("DEV003", 10),
            _reading("DEV003", 120),
        ]
    )

    latest = service.latest_per_device()

    assert [(reading.device_id, reading.timestamp) for reading in latest] == [
        ("DEV003", BASE_TIME + timedelta(minutes=120)),
        ("DEV001", BASE_TIME + timedelta(minutes=90)),
        ("DEV002", BASE_TIME + timedelta(minutes=30)),
    ]


def test_latest_per_device_on_empty_store(service) -> None:
    assert service.latest_per_device() == []


def test_history_caps_per_device_without_padding(store, service) -> None:
    store.insert_batch([_reading("DEV001", minutes) for minutes in range(0, 50 * 30, 30)])
    store.insert_batch([_reading("DEV002", minutes) for minutes in (5, 15, 25)])

    history = service.history_all_devices(48)

    per_device = {
        device_id: [reading for reading in history if reading.device_id == device_id]
        for device_id in ("DEV001", "DEV002")
    }
    assert len(per_device["DEV001"]) == 48
    assert len(per_device["DEV002"]) == 3
    assert len(history) == 51
    timestamps = [reading.timestamp for reading in history]
    assert timestamps == sorted(timestamps, reverse=True)
    # The two oldest DEV001 rows fall outside the cap.
    assert min(reading.timestamp for reading in per_device["DEV001"]) == BASE_TIME + timedelta(minutes=60)


def test_history_uses_configured_default_limit(store) -> None:
    service = ReadingQueryService(store=store, workers=1, history_limit=2)
    try:
        store.insert_batch([_reading("DEV001", minutes) for minutes in range(5)])
        store.insert_batch([_reading("DEV002", minutes) for minutes in range(5)])

        history = service.history_all_devices()
    finally:
        service.shutdown()

    assert len(history) == 4
    assert {reading.timestamp for reading in history} == {
        BASE_TIME + timedelta(minutes=4),
        BASE_TIME + timedelta(minutes=3),
    }


def test_history_rejects_non_positive_limit(service) -> None:
    with pytest.raises(ValueError):
        service.history_all_devices(0)


def test_devices_emptied_mid_query_are_dropped() -> None:
    class VanishingStore(ReadingStore):
        def find_latest_by_device(self, device_id: str) -> Optional[Reading]:
            if device_id == "DEV002":
                return None
            return super().find_latest_by_device(device_id)

    vanishing = VanishingStore(name="readings")
    vanishing.insert_batch([_reading("DEV001", 0), _reading("DEV002", 10)])
    service = ReadingQueryService(store=vanishing, workers=2)
    try:
        latest = service.latest_per_device()
    finally:
        service.shutdown()

    assert [reading.device_id for reading in latest] == ["DEV001"]


def test_any_failed_lookup_fails_the_whole_query() -> None:
    class BrokenStore(ReadingStore):
        def find_latest_by_device(self, device_id: str) -> Optional[Reading]:
            if device_id == "DEV002":
                raise RuntimeError("lookup exploded")
            return super().find_latest_by_device(device_id)

    broken = BrokenStore(name="readings")
    broken.insert_batch([_reading("DEV001", 0), _reading("DEV002", 10), _reading("DEV003", 20)])
    service = ReadingQueryService(store=broken, workers=2)
    try:
        with pytest.raises(RuntimeError, match="lookup exploded"):
            service.latest_per_device()
    finally:
        service.shutdown()


def test_lookups_run_concurrently() -> None:
    barrier = threading.Barrier(2)

    class CoordinatedStore(ReadingStore):
        def find_latest_by_device(self, device_id: str) -> Optional[Reading]:
            try:
                barrier.wait(timeout=1.0)
            except threading.BrokenBarrierError as exc:
                raise AssertionError("Device lookups did not run concurrently") from exc
            return super().find_latest_by_device(device_id)

    coordinated = CoordinatedStore(name="readings")
    coordinated.insert_batch([_reading("DEV001", 0), _reading("DEV002", 10)])
    service = ReadingQueryService(store=coordinated, workers=2)
    try:
        latest = service.latest_per_device()
    finally:
        service.shutdown()

    assert [reading.device_id for reading in latest] == ["DEV002", "DEV001"]


def test_slow_lookups_time_out_as_unavailable() -> None:
    class SlowStore(ReadingStore):
        def find_recent_by_device(self, device_id: str, limit: int) -> list[Reading]:
            time.sleep(0.5)
            return super().find_recent_by_device(device_id, limit)

    slow = SlowStore(name="readings")
    slow.insert(_reading("DEV001", 0))
    service = ReadingQueryService(store=slow, workers=1, timeout=0.05)
    try:
        with pytest.raises(StoreUnavailableError):
            service.history_all_devices()
    finally:
        service.shutdown()
