from __future__ import annotations
import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Union
from uuid import uuid4

from pydantic import ValidationError

from errors import (
    ConstraintViolationError,
    ReadingValidationError,
    StoreCorruptedError,
    StoreUnavailableError,
)
from models.records import Reading
from settings import get_settings

logger = logging.getLogger(__name__)

ReadingInput = Union[Reading, Mapping[str, Any]]


@dataclass(frozen=True)
class BatchInsertResult:
    inserted: int
    failed: int


class ReadingStore:
    """File-backed collection of readings keyed by (device_id, timestamp).

    All access goes through a single lock acquired with ``timeout`` seconds;
    failing to get it raises :class:`StoreUnavailableError`. Each mutation
    rewrites the persistence file while the lock is held and is rolled back
    if the write fails.
    """

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        timeout: float = 5.0,
    ) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self.timeout = timeout
        self._readings: Dict[str, Dict[datetime, Reading]] = {}
        self._lock = Lock()
        self._closed = False
        if persistence_path:
            try:
                persistence_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreUnavailableError(
                    f"Cannot prepare store directory {persistence_path.parent}: {exc}"
                ) from exc
            self._load_from_disk()

    def insert(self, reading: ReadingInput) -> Reading:
        candidate = self._coerce(reading)
        with self._locked():
            existing = self._readings.get(candidate.device_id, {})
            if candidate.timestamp in existing:
                raise ConstraintViolationError(candidate.device_id, candidate.timestamp)
            stored = self._with_identity(candidate)
            self._apply([stored], [])
        return stored

    def insert_batch(
        self,
        readings: Iterable[ReadingInput],
        allow_partial_failure: bool = True,
    ) -> BatchInsertResult:
        """Insert many readings at once.

        With ``allow_partial_failure`` every valid, non-conflicting row is written
        and the rest are counted as failures. Without it the first bad row raises
        and nothing is written.
        """
        accepted: List[Reading] = []
        failed = 0
        candidates: List[Reading] = []
        for item in readings:
            try:
                candidates.append(self._coerce(item))
            except ReadingValidationError:
                if not allow_partial_failure:
                    raise
                failed += 1

        with self._locked():
            seen: Set[tuple[str, datetime]] = set()
            for candidate in candidates:
                conflict = (
                    candidate.key in seen
                    or candidate.timestamp in self._readings.get(candidate.device_id, {})
                )
                if conflict:
                    if not allow_partial_failure:
                        raise ConstraintViolationError(candidate.device_id, candidate.timestamp)
                    failed += 1
                    continue
                seen.add(candidate.key)
                accepted.append(self._with_identity(candidate))
            if accepted:
                self._apply(accepted, [])

        return BatchInsertResult(inserted=len(accepted), failed=failed)

    def find_latest_by_device(self, device_id: str) -> Optional[Reading]:
        with self._locked():
            rows = self._readings.get(device_id)
            if not rows:
                return None
            return rows[max(rows)]

    def find_recent_by_device(self, device_id: str, limit: int) -> List[Reading]:
        if limit < 1:
            raise ValueError("limit must be at least 1.")
        with self._locked():
            rows = self._readings.get(device_id, {})
            newest_first = sorted(rows, reverse=True)[:limit]
            return [rows[timestamp] for timestamp in newest_first]

    def distinct_device_ids(self) -> Set[str]:
        with self._locked():
            return {device_id for device_id, rows in self._readings.items() if rows}

    def count(self) -> int:
        with self._locked():
            return sum(len(rows) for rows in self._readings.values())

    def delete_all_by_device(self, device_id: str) -> int:
        with self._locked():
            removed = len(self._readings.get(device_id, {}))
            if removed:
                self._apply([], [device_id])
            return removed

    def delete_all(self) -> int:
        with self._locked():
            removed = sum(len(rows) for rows in self._readings.values())
            if removed:
                self._apply([], list(self._readings))
            return removed

    def close(self) -> None:
        with self._locked(require_open=False):
            self._closed = True
        logger.info("Reading store closed", extra={"store": self.name})

    @contextmanager
    def _locked(self, require_open: bool = True) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout):
            raise StoreUnavailableError(
                f"Timed out after {self.timeout}s waiting for store {self.name!r}."
            )
        try:
            if require_open and self._closed:
                raise StoreUnavailableError(f"Store {self.name!r} is closed.")
            yield
        finally:
            self._lock.release()

    @staticmethod
    def _coerce(reading: ReadingInput) -> Reading:
        if isinstance(reading, Reading):
            return reading
        try:
            return Reading.model_validate(reading)
        except ValidationError as exc:
            raise ReadingValidationError(f"Malformed reading: {exc}") from exc

    @staticmethod
    def _with_identity(reading: Reading) -> Reading:
        if reading.id:
            return reading
        return reading.model_copy(update={"id": uuid4().hex})

    def _apply(self, added: List[Reading], removed_devices: List[str]) -> None:
        """Apply a mutation, persist it, and roll back if persisting fails."""
        previous = {device_id: dict(rows) for device_id, rows in self._readings.items()}
        for device_id in removed_devices:
            self._readings.pop(device_id, None)
        for reading in added:
            self._readings.setdefault(reading.device_id, {})[reading.timestamp] = reading
        try:
            self._persist()
        except OSError as exc:
            self._readings = previous
            raise StoreUnavailableError(f"Failed to persist store {self.name!r}: {exc}") from exc

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [
            reading.model_dump(mode="json", by_alias=True)
            for rows in self._readings.values()
            for reading in rows.values()
        ]
        scratch = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        scratch.write_text(json.dumps(payload, indent=2))
        scratch.replace(self.persistence_path)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot read store file {self.persistence_path}: {exc}"
            ) from exc

        try:
            data = json.loads(raw)
            readings = [Reading.model_validate(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            raise StoreCorruptedError(
                f"Store file {self.persistence_path} does not hold valid readings."
            ) from exc

        for reading in readings:
            self._readings.setdefault(reading.device_id, {})[reading.timestamp] = reading
        logger.info(
            "Loaded readings from disk",
            extra={"store": self.name, "reading_count": len(readings)},
        )


def connect_with_retry(
    factory: Callable[[], ReadingStore],
    retry_delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> ReadingStore:
    """Build the store, retrying forever while it reports itself unavailable."""
    attempt = 0
    while True:
        attempt += 1
        try:
            store = factory()
        except StoreUnavailableError as exc:
            logger.warning(
                "Reading store unavailable, retrying",
                extra={"attempt": attempt, "delay_seconds": retry_delay, "reason": str(exc)},
            )
            sleep(retry_delay)
            continue
        logger.info("Reading store connected", extra={"store": store.name, "attempt": attempt})
        return store


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingStore:
    settings = get_settings()
    store_name = settings.store_name if name is None else name
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return connect_with_retry(
        lambda: ReadingStore(
            name=store_name,
            persistence_path=persistence,
            timeout=settings.store_timeout,
        ),
        retry_delay=settings.connect_retry_seconds,
    )
