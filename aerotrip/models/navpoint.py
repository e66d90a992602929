#!/usr/bin/env python3

import math
from typing import List, Optional, Tuple
from dataclasses import dataclass

EARTH_RADIUS_NM = 3440.065
NM_TO_STATUTE_MILES = 1.15078


@dataclass(frozen=True)
class NavPoint:
    """
    A geographic point with coordinates and optional name.

    All coordinates are stored in decimal degrees:
    - Latitude: -90 to +90 degrees (negative for South, positive for North)
    - Longitude: -180 to +180 degrees (negative for West, positive for East)

    All distance calculations use nautical miles (1 nautical mile = 1.852 kilometers)
    All bearing calculations use degrees (0-360, where 0/360 is North, 90 is East, etc.)
    """

    latitude: float  # Decimal degrees, -90 to +90
    longitude: float  # Decimal degrees, -180 to +180
    name: Optional[str] = None  # Optional label for the point

    def __post_init__(self):
        """Validate coordinates after initialization."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude must be between -90 and 90 degrees, got {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude must be between -180 and 180 degrees, got {self.longitude}")

    def point_from_bearing_distance(self, bearing: float, distance: float, name: Optional[str] = None) -> 'NavPoint':
        """
        Create a new NavPoint from this point's position, bearing, and distance.

        Args:
            bearing: Bearing in degrees (0-360, where 0/360 is North, 90 is East, etc.)
            distance: Distance in nautical miles
            name: Optional name for the new point

        Returns:
            A new NavPoint at the calculated position
        """
        lat1 = math.radians(self.latitude)
        lon1 = math.radians(self.longitude)
        bearing_rad = math.radians(bearing)
        angular = distance / EARTH_RADIUS_NM

        lat2 = math.asin(
            math.sin(lat1) * math.cos(angular) +
            math.cos(lat1) * math.sin(angular) * math.cos(bearing_rad)
        )
        lon2 = lon1 + math.atan2(
            math.sin(bearing_rad) * math.sin(angular) * math.cos(lat1),
            math.cos(angular) - math.sin(lat1) * math.sin(lat2)
        )

        # Normalize longitude to [-180, 180)
        longitude = (math.degrees(lon2) + 540) % 360 - 180
        return NavPoint(latitude=math.degrees(lat2), longitude=longitude, name=name)

    def haversine_distance(self, other: 'NavPoint') -> Tuple[float, float]:
        """
        Calculate the bearing and distance to another NavPoint using the Haversine formula.

        Args:
            other: The target NavPoint

        Returns:
            Tuple of (bearing in degrees, distance in nautical miles)
            - bearing: initial true course, 0-360 degrees
            - distance: great-circle distance in nautical miles
        """
        lat1 = math.radians(self.latitude)
        lon1 = math.radians(self.longitude)
        lat2 = math.radians(other.latitude)
        lon2 = math.radians(other.longitude)

        dlat = lat2 - lat1
        dlon = lon2 - lon1

        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        distance = EARTH_RADIUS_NM * c

        y = math.sin(dlon) * math.cos(lat2)
        x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
        bearing = math.degrees(math.atan2(y, x))
        bearing = (bearing + 360) % 360

        return bearing, distance

    def distance_to(self, other: 'NavPoint') -> float:
        """Great-circle distance in nautical miles."""
        return self.haversine_distance(other)[1]

    def course_to(self, other: 'NavPoint') -> float:
        """Initial true course in degrees."""
        return self.haversine_distance(other)[0]

    def midpoint(self, other: 'NavPoint', fraction: float = 0.5) -> 'NavPoint':
        """Point at ``fraction`` of the way along the great circle to ``other``."""
        bearing, distance = self.haversine_distance(other)
        return self.point_from_bearing_distance(bearing, distance * fraction)

    def to_dict(self) -> dict:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'name': self.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'NavPoint':
        return cls(
            latitude=float(data['latitude']),
            longitude=float(data['longitude']),
            name=data.get('name'),
        )

    def __str__(self) -> str:
        name_str = f"{self.name} " if self.name else ""
        return f"{name_str}({self.latitude}, {self.longitude})"


def path_distance(points: List[NavPoint]) -> float:
    """Total great-circle length of a polyline in nautical miles."""
    return sum(a.distance_to(b) for a, b in zip(points, points[1:]))
