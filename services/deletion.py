from __future__ import annotations

import logging
from functools import lru_cache

from datastore.reading_store import ReadingStore, build_default_store
from errors import DeviceNotFoundError

logger = logging.getLogger(__name__)


class DeletionService:

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def delete_device(self, device_id: str) -> int:
        """Remove every reading for ``device_id``; raise if there were none."""
        removed = self.store.delete_all_by_device(device_id)
        if removed == 0:
            raise DeviceNotFoundError(device_id)
        logger.info(
            "Deleted device readings",
            extra={"device_id": device_id, "deleted_count": removed},
        )
        return removed


@lru_cache
def build_default_deletion_service() -> DeletionService:
    return DeletionService(store=build_default_store())
