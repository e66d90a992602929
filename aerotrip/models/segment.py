from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from aerotrip.models.navpoint import NavPoint


class SegmentType(Enum):
    GROUND = "ground"
    FLIGHT = "flight"


@dataclass(frozen=True)
class TripSegment:
    """
    One leg of a trip.

    Attributes:
        type: Ground or flight
        origin / destination: Display labels such as ``KFRG (Pickup Airport)``
        duration_minutes: Expected duration
        distance: Nautical miles for flights, statute miles for ground legs
        polyline: Route geometry, when known
        route_quality: ``great-circle`` for flights, the routing source for
            ground legs (``heuristic`` when no routing service answered)
    """

    type: SegmentType
    origin: str
    destination: str
    duration_minutes: int
    distance: float
    polyline: Tuple[NavPoint, ...] = ()
    route_quality: Optional[str] = None

    @property
    def is_flight(self) -> bool:
        return self.type == SegmentType.FLIGHT

    def to_dict(self) -> dict:
        return {
            'type': self.type.value,
            'from': self.origin,
            'to': self.destination,
            'duration': self.duration_minutes,
            'distance': round(self.distance, 1),
            'polyline': [[p.latitude, p.longitude] for p in self.polyline],
            'route_quality': self.route_quality,
        }

    def __str__(self) -> str:
        return f"{self.type.value}: {self.origin} -> {self.destination} ({self.duration_minutes} min)"
