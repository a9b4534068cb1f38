"""
Fleet positions for the overview board.

Mock provider until the telematics integration lands: a fixed set of units
with fresh timestamps and, for moving units, a random speed.
"""

import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from django.utils import timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleLocation:
    id: str
    name: str
    latitude: float
    longitude: float
    heading: int
    speed: float
    last_location: Optional[datetime]
    status: str

    @property
    def is_active(self):
        return self.status == "active"


_MOCK_FLEET = (
    VehicleLocation("1", "Truck 001", 43.6532, -79.3832, 90, 65, None, "active"),
    VehicleLocation("2", "Truck 002", 45.5017, -73.5673, 180, 0, None, "inactive"),
    VehicleLocation("3", "Truck 003", 49.2827, -123.1207, 270, 55, None, "active"),
)

MIN_ACTIVE_SPEED = 25
MAX_ACTIVE_SPEED = 90


def get_vehicle_locations(rng=random):
    now = timezone.now()
    locations = [
        replace(
            vehicle,
            last_location=now,
            speed=(
                round(rng.uniform(MIN_ACTIVE_SPEED, MAX_ACTIVE_SPEED), 1)
                if vehicle.is_active
                else 0
            ),
        )
        for vehicle in _MOCK_FLEET
    ]
    logger.debug("Fetched %d vehicle positions", len(locations))
    return locations
