from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import router
from datastore.reading_store import build_default_store
from logging_config import configure_logging
from services.deletion import build_default_deletion_service
from services.ingestion import build_default_ingestion_service
from services.queries import build_default_query_service
from settings import get_settings


def clear_service_caches() -> None:
    for factory in (
        build_default_query_service,
        build_default_ingestion_service,
        build_default_deletion_service,
        build_default_store,
    ):
        factory.cache_clear()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    query_service = build_default_query_service()
    try:
        yield
    finally:
        query_service.shutdown()
        store.close()
        clear_service_caches()


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed JSON bodies and bad query parameters are client errors, not 422s.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": _jsonable_errors(exc)},
    )


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="IoT Device Monitor",
        description="Ingests and serves temperature and humidity readings from simulated devices.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(router)
    return app


app = create_app()
