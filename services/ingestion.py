"""Ingestion of single readings submitted through the API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

from datastore.reading_store import ReadingStore, build_default_store
from models.records import Reading
from services.validation import validate_reading_payload

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionService:
    """Validates a payload and appends it to the store as a new reading."""

    def __init__(
        self,
        store: ReadingStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or _utcnow

    def ingest(self, payload: Any) -> Reading:
        """Store one reading stamped with the current time.

        A missing or empty ``deviceName`` is inherited from the device's most
        recent reading. Validation errors are raised before the store is touched;
        a duplicate (device, timestamp) key raises ``ConstraintViolationError``.
        """
        outcome = validate_reading_payload(payload)
        if not outcome.ok:
            assert outcome.error is not None
            logger.info(
                "Rejected reading",
                extra={
                    "device_id": payload.get("deviceId") if isinstance(payload, dict) else None,
                    "error_kind": outcome.error.kind,
                    "reason": outcome.error.message,
                },
            )
            raise outcome.error

        candidate = outcome.candidate
        assert candidate is not None
        device_name = candidate.device_name
        existing = self.store.find_latest_by_device(candidate.device_id)
        if existing is not None and not device_name:
            device_name = existing.device_name

        reading = Reading(
            device_id=candidate.device_id,
            device_name=device_name,
            temperature=candidate.temperature,
            humidity=candidate.humidity,
            timestamp=self._clock(),
        )
        stored = self.store.insert(reading)
        logger.info(
            "Stored reading",
            extra={
                "device_id": stored.device_id,
                "reading_id": stored.id,
                "timestamp": stored.timestamp.isoformat(),
            },
        )
        return stored


@lru_cache
def build_default_ingestion_service() -> IngestionService:
    return IngestionService(store=build_default_store())
