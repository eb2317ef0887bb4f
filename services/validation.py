"""Explicit validation of incoming reading payloads.

Checks run in a fixed order and stop at the first failure, so a payload with
several problems always reports the same one:

1. ``deviceId`` present and non-blank (``MissingFieldError``)
2. ``temperature`` numeric (``InvalidFieldError``)
3. ``humidity`` numeric (``InvalidFieldError``)
4. ``deviceId`` starts with ``DEV`` (``InvalidFormatError``)
5. ``deviceName`` is a string when given (``InvalidFieldError``)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from errors import (
    InvalidFieldError,
    InvalidFormatError,
    MissingFieldError,
    ReadingValidationError,
)

DEVICE_ID_PREFIX = "DEV"


@dataclass(frozen=True)
class ReadingCandidate:
    """A payload that passed validation, not yet stamped or stored."""

    device_id: str
    device_name: Optional[str]
    temperature: float
    humidity: float


@dataclass(frozen=True)
class ValidationOutcome:
    candidate: Optional[ReadingCandidate] = None
    error: Optional[ReadingValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            parsed = float(candidate)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def _fail(error: ReadingValidationError) -> ValidationOutcome:
    return ValidationOutcome(error=error)


def validate_reading_payload(payload: Any) -> ValidationOutcome:
    if not isinstance(payload, Mapping):
        return _fail(InvalidFieldError("Request body must be a JSON object."))

    device_id = payload.get("deviceId")
    if device_id is None or (isinstance(device_id, str) and not device_id.strip()):
        return _fail(MissingFieldError("Device ID is required", field="deviceId"))
    if not isinstance(device_id, str):
        return _fail(InvalidFormatError("Device ID must be a string", field="deviceId"))

    temperature = _parse_number(payload.get("temperature"))
    if temperature is None:
        return _fail(InvalidFieldError("Valid temperature is required", field="temperature"))

    humidity = _parse_number(payload.get("humidity"))
    if humidity is None:
        return _fail(InvalidFieldError("Valid humidity is required", field="humidity"))

    if device_id != device_id.strip():
        return _fail(
            InvalidFormatError(
                "Device ID must not have surrounding whitespace", field="deviceId"
            )
        )
    if not device_id.startswith(DEVICE_ID_PREFIX):
        return _fail(
            InvalidFormatError(
                f"Device ID must start with '{DEVICE_ID_PREFIX}'", field="deviceId"
            )
        )

    device_name = payload.get("deviceName")
    if device_name is not None and not isinstance(device_name, str):
        return _fail(InvalidFieldError("Device name must be a string", field="deviceName"))

    return ValidationOutcome(
        candidate=ReadingCandidate(
            device_id=device_id,
            device_name=device_name,
            temperature=temperature,
            humidity=humidity,
        )
    )
