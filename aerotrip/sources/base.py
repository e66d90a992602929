from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint


@dataclass(frozen=True)
class NearbyAirport:
    """Search hit: an airport code and its straight-line distance."""

    ident: str
    distance_nm: float
    name: Optional[str] = None


@dataclass(frozen=True)
class GroundRoute:
    """
    Result of a ground-route estimate.

    ``source`` names the routing service, or ``heuristic`` when the
    estimate was derived from straight-line distance.
    """

    duration_minutes: int
    distance_miles: float
    source: str
    polyline: Tuple[NavPoint, ...] = ()
    has_traffic_data: bool = False

    @property
    def is_heuristic(self) -> bool:
        return self.source == "heuristic"

    def to_dict(self) -> dict:
        return {
            'duration_minutes': self.duration_minutes,
            'distance_miles': self.distance_miles,
            'source': self.source,
            'polyline': [[p.latitude, p.longitude] for p in self.polyline],
            'has_traffic_data': self.has_traffic_data,
        }


class AirportReference(ABC):
    """
    Base interface for airport reference data.

    Implementations must be safe to call concurrently from several tasks.
    """

    @abstractmethod
    async def get(self, code: str) -> Optional[Airport]:
        """
        Look up one airport.

        Args:
            code: Airport code (ICAO, or a local code the source understands)

        Returns:
            Airport with its runways, or None if unknown
        """
        pass

    @abstractmethod
    async def search(
        self,
        latitude: float,
        longitude: float,
        radius_nm: float,
        min_runway_length_ft: Optional[float] = None,
        paved_only: bool = False,
    ) -> List[NearbyAirport]:
        """
        Find airports around a point, sorted by straight-line distance.

        Args:
            latitude, longitude: Search centre
            radius_nm: Search radius
            min_runway_length_ft: Optional pre-filter on the longest runway
            paved_only: Only airports with at least one paved runway

        Returns:
            Matches closest first
        """
        pass


class GroundRouter(ABC):
    """Base interface for ground-transport duration estimates."""

    @abstractmethod
    async def estimate(
        self,
        origin: NavPoint,
        destination: NavPoint,
        departure_time: Optional[datetime] = None,
    ) -> GroundRoute:
        """
        Estimate a drive between two points.

        Implementations always return a route, falling back to a heuristic
        when the routing service is unavailable.
        """
        pass
