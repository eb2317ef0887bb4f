"""Latest and history queries fanned out per device."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, TypeVar

from datastore.reading_store import ReadingStore, build_default_store
from errors import StoreUnavailableError
from models.records import Reading
from settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _newest_first(readings: Iterable[Reading]) -> List[Reading]:
    return sorted(readings, key=lambda reading: reading.timestamp, reverse=True)


class ReadingQueryService:
    """Scatter-gather reads over the store's distinct devices.

    One lookup task per device runs on the worker pool; results are only
    combined once every task has finished. A failing task fails the whole
    query, and a device whose readings vanished mid-query is dropped.
    """

    def __init__(
        self,
        store: ReadingStore,
        workers: int = 4,
        timeout: Optional[float] = None,
        history_limit: int = 48,
    ) -> None:
        self.store = store
        self.timeout = timeout
        self.history_limit = history_limit
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="device-query")

    def latest_per_device(self) -> List[Reading]:
        device_ids = sorted(self.store.distinct_device_ids())
        latest = self._gather(self.store.find_latest_by_device, device_ids)
        readings = _newest_first(reading for reading in latest if reading is not None)
        logger.debug(
            "Computed latest readings",
            extra={"device_count": len(device_ids), "reading_count": len(readings)},
        )
        return readings

    def history_all_devices(self, limit: Optional[int] = None) -> List[Reading]:
        """Up to ``limit`` newest readings for each device, merged newest first.

        The cap applies per device, so the result holds at most
        ``limit * device_count`` rows.
        """
        per_device = self.history_limit if limit is None else limit
        if per_device < 1:
            raise ValueError("limit must be at least 1.")
        device_ids = sorted(self.store.distinct_device_ids())
        histories = self._gather(
            lambda device_id: self.store.find_recent_by_device(device_id, per_device),
            device_ids,
        )
        readings = _newest_first(reading for history in histories for reading in history)
        logger.debug(
            "Computed device history",
            extra={
                "device_count": len(device_ids),
                "limit": per_device,
                "reading_count": len(readings),
            },
        )
        return readings

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _gather(self, lookup: Callable[[str], T], device_ids: List[str]) -> List[T]:
        futures: List[Future[T]] = [
            self.executor.submit(lookup, device_id) for device_id in device_ids
        ]
        if not futures:
            return []
        _done, pending = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)
        failed = next(
            (future for future in futures if future.done() and future.exception() is not None),
            None,
        )
        if failed is not None:
            for future in pending:
                future.cancel()
            raise failed.exception()  # type: ignore[misc]
        if pending:
            for future in pending:
                future.cancel()
            raise StoreUnavailableError(
                f"Timed out after {self.timeout}s waiting for {len(pending)} device lookups."
            )
        return [future.result() for future in futures]


@lru_cache
def build_default_query_service(
    workers: Optional[int] = None,
) -> ReadingQueryService:
    """Factory that wires the query service to the default store."""
    settings = get_settings()
    return ReadingQueryService(
        store=build_default_store(),
        workers=workers or settings.query_workers,
        timeout=settings.query_timeout,
        history_limit=settings.history_limit,
    )
