"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReadingCreate(BaseModel):
    """Documented shape of the ingestion body.

    Only used for the OpenAPI schema; the route validates the raw body itself
    so that every rejection maps to the ingestion error kinds.
    """

    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId", examples=["DEV001"])
    device_name: Optional[str] = Field(default=None, alias="deviceName", examples=["Living Room"])
    temperature: float = Field(..., examples=[21.5])
    humidity: float = Field(..., examples=[48.0])


class DeleteResponse(BaseModel):
    """Confirmation returned after removing a device's readings."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    deleted_count: int = Field(..., alias="deletedCount", ge=1)
