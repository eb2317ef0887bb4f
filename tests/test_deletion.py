from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from datastore.reading_store import ReadingStore
from errors import DeviceNotFoundError
from models.records import Reading
from services.deletion import DeletionService


def _reading(device_id: str, minutes: int) -> Reading:
    return Reading(
        device_id=device_id,
        temperature=20.0,
        humidity=40.0,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def test_delete_device_removes_all_rows_for_that_device(caplog) -> None:
    store = ReadingStore(name="readings")
    store.insert_batch([_reading("DEV001", minutes) for minutes in range(3)] + [_reading("DEV002", 0)])
    service = DeletionService(store=store)

    with caplog.at_level(logging.INFO, logger="services.deletion"):
        removed = service.delete_device("DEV001")

    assert removed == 3
    assert store.distinct_device_ids() == {"DEV002"}
    assert any(getattr(record, "deleted_count", None) == 3 for record in caplog.records)


def test_delete_unknown_device_raises_not_found() -> None:
    service = DeletionService(store=ReadingStore(name="readings"))

    with pytest.raises(DeviceNotFoundError) as excinfo:
        service.delete_device("DEV999")

    assert excinfo.value.device_id == "DEV999"
