"""Domain models shared across services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Reading(BaseModel):
    """A single temperature/humidity sample reported by a device.

    Field names are snake_case in Python and camelCase on the wire and on disk.
    Instances are frozen; the store hands out the same immutable values it holds.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = Field(default=None, description="Identity assigned by the store.")
    device_id: str = Field(..., alias="deviceId", min_length=1)
    device_name: Optional[str] = Field(default=None, alias="deviceName")
    temperature: float = Field(..., allow_inf_nan=False)
    humidity: float = Field(..., allow_inf_nan=False)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def key(self) -> tuple[str, datetime]:
        """Natural key: no two stored readings share it."""
        return (self.device_id, self.timestamp)
