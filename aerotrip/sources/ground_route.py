"""Ground transport estimates: OSRM routing service with a heuristic fallback."""

import logging
from datetime import datetime
from typing import Optional

import requests

from aerotrip.models.navpoint import NavPoint, NM_TO_STATUTE_MILES
from aerotrip.sources.base import GroundRoute, GroundRouter
from aerotrip.utils.concurrency import call_blocking

logger = logging.getLogger(__name__)

_METERS_PER_MILE = 1609.344


def traffic_multiplier(departure_time: Optional[datetime]) -> float:
    """
    Traffic factor for a departure time, read in the time's own zone.

    Weekday rush hours (07-09, 16-19) give 1.4, other daytime hours
    (06-20) 1.15, night 1.0. Weekends are 10% lighter.
    """
    if departure_time is None:
        return 1.0
    hour = departure_time.hour
    weekday = departure_time.weekday()  # Monday == 0
    rush_hour = 7 <= hour <= 9 or 16 <= hour <= 19

    multiplier = 1.0
    if rush_hour and weekday < 5:
        multiplier = 1.4
    elif 6 <= hour <= 20:
        multiplier = 1.15
    if weekday >= 5:
        multiplier *= 0.9
    return multiplier


class HeuristicGroundRouter(GroundRouter):
    """
    Drive estimate from straight-line distance.

    Road distance is taken as the great-circle distance in statute miles,
    driven at ``AVERAGE_SPEED_MPH`` and scaled by the traffic multiplier.
    """

    AVERAGE_SPEED_MPH = 45.0

    def estimate_sync(
        self,
        origin: NavPoint,
        destination: NavPoint,
        departure_time: Optional[datetime] = None,
    ) -> GroundRoute:
        miles = origin.distance_to(destination) * NM_TO_STATUTE_MILES
        minutes = miles / self.AVERAGE_SPEED_MPH * 60 * traffic_multiplier(departure_time)
        return GroundRoute(
            duration_minutes=int(round(minutes)),
            distance_miles=round(miles, 1),
            source="heuristic",
            polyline=(origin, destination),
        )

    async def estimate(
        self,
        origin: NavPoint,
        destination: NavPoint,
        departure_time: Optional[datetime] = None,
    ) -> GroundRoute:
        return self.estimate_sync(origin, destination, departure_time)


class OsrmGroundRouter(GroundRouter):
    """
    Drive estimate from an OSRM routing server.

    OSRM durations assume free-flowing traffic, so the traffic multiplier is
    applied on top. Any failure falls back to the heuristic estimate.

    Example:
        router = OsrmGroundRouter()
        route = await router.estimate(NavPoint(40.85, -73.26), NavPoint(40.73, -73.41))
    """

    BASE_URL = "https://router.project-osrm.org"
    DEFAULT_TIMEOUT = 10
    USER_AGENT = "aerotrip/1.0 (trip planning tool)"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        fallback: Optional[HeuristicGroundRouter] = None,
    ):
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", self.USER_AGENT)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._fallback = fallback or HeuristicGroundRouter()

    def route(self, origin: NavPoint, destination: NavPoint, departure_time: Optional[datetime] = None) -> Optional[GroundRoute]:
        """
        Query the routing server.

        Returns:
            GroundRoute, or None if the server gave no usable route
        """
        coords = f"{origin.longitude},{origin.latitude};{destination.longitude},{destination.latitude}"
        url = f"{self._base_url}/route/v1/driving/{coords}"
        try:
            response = self._session.get(
                url,
                params={"overview": "simplified", "geometries": "geojson"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except Exception as e:
            logger.warning("OSRM route failed: %s", e)
            return None

        if payload.get('code') != 'Ok' or not payload.get('routes'):
            logger.warning("OSRM returned no route (%s)", payload.get('code'))
            return None

        best = payload['routes'][0]
        minutes = best['duration'] / 60.0 * traffic_multiplier(departure_time)
        coordinates = (best.get('geometry') or {}).get('coordinates') or []
        polyline = tuple(NavPoint(lat, lon) for lon, lat in coordinates)
        return GroundRoute(
            duration_minutes=int(round(minutes)),
            distance_miles=round(best['distance'] / _METERS_PER_MILE, 1),
            source="osrm",
            polyline=polyline,
        )

    async def estimate(
        self,
        origin: NavPoint,
        destination: NavPoint,
        departure_time: Optional[datetime] = None,
    ) -> GroundRoute:
        route = await call_blocking(
            self.route, origin, destination, departure_time,
            timeout=self._timeout + 2, label="osrm route",
        )
        if route is not None:
            return route
        logger.info("Using heuristic ground estimate")
        return self._fallback.estimate_sync(origin, destination, departure_time)
