"""Synthetic history for the simulated household devices."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from datastore.reading_store import ReadingStore
from models.records import Reading

logger = logging.getLogger(__name__)

POINTS_PER_DEVICE = 48
POINT_SPACING = timedelta(minutes=30)


@dataclass(frozen=True)
class SeedLocation:
    """A simulated room and the ranges its readings are drawn from."""

    zone: str
    name: str
    temperature_range: Tuple[float, float]
    humidity_range: Tuple[float, float]

    @property
    def device_id(self) -> str:
        return f"DEV{self.zone}"


LOCATIONS: Sequence[SeedLocation] = (
    SeedLocation("001", "Living Room", (20, 24), (40, 60)),
    SeedLocation("002", "Master Bedroom", (18, 22), (45, 55)),
    SeedLocation("003", "Kitchen", (22, 26), (35, 50)),
    SeedLocation("004", "Bathroom", (22, 25), (50, 70)),
    SeedLocation("005", "Dining Room", (20, 24), (40, 60)),
    SeedLocation("006", "Guest Room", (20, 23), (45, 55)),
    SeedLocation("007", "Home Office", (21, 24), (40, 55)),
    SeedLocation("008", "Basement", (18, 21), (50, 65)),
    SeedLocation("009", "Garage", (15, 25), (30, 60)),
    SeedLocation("010", "Garden Room", (19, 23), (45, 65)),
)


@dataclass
class SeedReport:
    cleared: int = 0
    inserted: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, int] = field(default_factory=dict)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())

    @property
    def total_failed(self) -> int:
        return sum(self.failed.values())


def generate_location_readings(
    location: SeedLocation,
    now: datetime,
    rng: random.Random,
) -> List[Reading]:
    """Build one reading every 30 minutes over the 24 hours ending at ``now``."""
    readings: List[Reading] = []
    for index in range(POINTS_PER_DEVICE):
        timestamp = now - (POINTS_PER_DEVICE - 1 - index) * POINT_SPACING
        readings.append(
            Reading(
                device_id=location.device_id,
                device_name=location.name,
                temperature=round(rng.uniform(*location.temperature_range), 1),
                humidity=round(rng.uniform(*location.humidity_range), 1),
                timestamp=timestamp,
            )
        )
    return readings


def seed_store(
    store: ReadingStore,
    reset: bool = True,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    locations: Sequence[SeedLocation] = LOCATIONS,
) -> SeedReport:
    """Populate ``store`` with synthetic history, optionally clearing it first.

    Rows that collide with existing readings are counted, not raised.
    """
    report = SeedReport()
    generator = rng or random.Random()
    anchor = now or datetime.now(timezone.utc)

    if reset:
        report.cleared = store.delete_all()
        logger.info("Cleared existing readings", extra={"deleted_count": report.cleared})

    for location in locations:
        readings = generate_location_readings(location, anchor, generator)
        result = store.insert_batch(readings, allow_partial_failure=True)
        report.inserted[location.device_id] = result.inserted
        report.failed[location.device_id] = result.failed
        log = logger.warning if result.failed else logger.info
        log(
            "Seeded location readings",
            extra={
                "device_name": location.name,
                "device_id": location.device_id,
                "inserted": result.inserted,
                "failed": result.failed,
            },
        )

    return report
