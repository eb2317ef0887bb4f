"""Exception hierarchy shared by the store, the services and the API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class DeviceMonitorError(Exception):
    """Base class for all domain errors raised by this service."""


class ReadingValidationError(DeviceMonitorError, ValueError):
    """A reading payload was rejected before reaching the store.

    ``kind`` tags the failure so callers can branch without isinstance chains.
    """

    kind = "invalid"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class MissingFieldError(ReadingValidationError):
    kind = "missing_field"


class InvalidFieldError(ReadingValidationError):
    kind = "invalid_field"


class InvalidFormatError(ReadingValidationError):
    kind = "invalid_format"


class ConstraintViolationError(DeviceMonitorError):
    """A reading with the same (device_id, timestamp) key is already stored."""

    def __init__(self, device_id: str, timestamp: datetime) -> None:
        super().__init__(
            f"Reading for device {device_id!r} at {timestamp.isoformat()} already exists."
        )
        self.device_id = device_id
        self.timestamp = timestamp


class DeviceNotFoundError(DeviceMonitorError):
    def __init__(self, device_id: str) -> None:
        super().__init__(f"No readings found for device {device_id!r}.")
        self.device_id = device_id


class StoreUnavailableError(DeviceMonitorError):
    """Transient store failure; safe to retry."""


class StoreCorruptedError(DeviceMonitorError):
    """Persisted readings could not be decoded."""
