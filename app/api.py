"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import DeleteResponse, ReadingCreate
from errors import (
    ConstraintViolationError,
    DeviceNotFoundError,
    ReadingValidationError,
    StoreUnavailableError,
)
from models.records import Reading
from services.deletion import DeletionService, build_default_deletion_service
from services.ingestion import IngestionService, build_default_ingestion_service
from services.queries import ReadingQueryService, build_default_query_service

logger = logging.getLogger(__name__)

router = APIRouter()
devices = APIRouter(prefix="/api/devices", tags=["devices"])


def get_ingestion_service() -> IngestionService:
    return build_default_ingestion_service()


def get_query_service() -> ReadingQueryService:
    return build_default_query_service()


def get_deletion_service() -> DeletionService:
    return build_default_deletion_service()


def _unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Reading store unavailable: {exc}",
    )


def _internal_error(exc: Exception) -> HTTPException:
    logger.error("Unhandled error while serving request", exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


@devices.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=Reading,
    summary="Store a new reading for a device.",
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": ReadingCreate.model_json_schema(by_alias=True)}
            },
        }
    },
)
def create_reading(
    payload: Any = Body(...),
    service: IngestionService = Depends(get_ingestion_service),
) -> Reading:
    try:
        return service.ingest(payload)
    except ReadingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    except ConstraintViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    except Exception as exc:
        raise _internal_error(exc) from exc


@devices.get(
    "/latest",
    response_model=List[Reading],
    summary="Latest reading of every device, newest first.",
)
def latest_readings(
    service: ReadingQueryService = Depends(get_query_service),
) -> List[Reading]:
    try:
        return service.latest_per_device()
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    except Exception as exc:
        raise _internal_error(exc) from exc


@devices.get(
    "/history",
    response_model=List[Reading],
    summary="Recent readings of every device, capped per device, newest first.",
)
def reading_history(
    limit: Optional[int] = Query(
        None, ge=1, description="Maximum readings per device (defaults to 48)."
    ),
    service: ReadingQueryService = Depends(get_query_service),
) -> List[Reading]:
    try:
        return service.history_all_devices(limit)
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    except Exception as exc:
        raise _internal_error(exc) from exc


@devices.delete(
    "/{device_id}",
    response_model=DeleteResponse,
    summary="Delete every reading stored for a device.",
)
def delete_device(
    device_id: str,
    service: DeletionService = Depends(get_deletion_service),
) -> DeleteResponse:
    try:
        removed = service.delete_device(device_id)
    except DeviceNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Device not found",
        ) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    except Exception as exc:
        raise _internal_error(exc) from exc
    return DeleteResponse(message="Device deleted successfully", deleted_count=removed)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint identifying the service.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "message": "IoT Monitoring System API"}


router.include_router(devices)
