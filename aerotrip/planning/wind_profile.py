"""Route-averaged winds aloft for flight-time estimates."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from aerotrip.models.navpoint import NavPoint, path_distance
from aerotrip.sources.avwx import AvWxSource
from aerotrip.utils.concurrency import call_blocking
from aerotrip.utils.wind import average_wind
from aerotrip.weather.winds_aloft import REFERENCE_STATIONS, WindSample, wind_at_altitude

logger = logging.getLogger(__name__)

SYNTHETIC_SOURCE = "synthetic"
ROUTE_SOURCE = "winds-aloft"

StationTable = Dict[str, Dict[int, WindSample]]


class WindProfileEstimator:
    """
    Estimate the average wind along a route at a given altitude.

    Live winds come from the FB winds-aloft bulletin. Each waypoint leg is
    sampled once, at the middle of the part of the leg flown outside the
    climb and descent buffers, using the nearest reference station that has
    data. Samples are vector-averaged, weighted by sampled length. When no
    station is close enough a synthetic prevailing westerly is used and the
    result is tagged ``synthetic``.

    The bulletin is fetched at most once per forecast period for the life
    of the estimator; create one estimator per planning request.
    """

    MAX_STATION_DISTANCE_NM = 300.0
    SYNTHETIC_DIRECTION = 270.0
    DEFAULT_TIMEOUT = 12.0

    def __init__(
        self,
        source: Optional[AvWxSource] = None,
        reference_time: Optional[datetime] = None,
        timeout: float = DEFAULT_TIMEOUT,
        stations: Optional[Dict[str, NavPoint]] = None,
    ):
        """
        Args:
            source: Winds-aloft provider; None always uses synthetic winds
            reference_time: "Now" for choosing the forecast period
            timeout: Timeout for the bulletin fetch
            stations: Reference station coordinates (defaults to the FB network)
        """
        self.source = source
        self.reference_time = reference_time
        self.timeout = timeout
        self.stations = stations if stations is not None else REFERENCE_STATIONS
        self._tables: Dict[int, asyncio.Future] = {}

    def forecast_hours_for(self, departure_time: Optional[datetime]) -> int:
        """FB forecast period (6, 12 or 24 hours) covering the departure time."""
        if departure_time is None:
            return 6
        reference = self.reference_time or datetime.now(timezone.utc)
        if departure_time.tzinfo is None:
            departure_time = departure_time.replace(tzinfo=timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        hours_ahead = (departure_time - reference).total_seconds() / 3600
        if hours_ahead <= 9:
            return 6
        if hours_ahead <= 18:
            return 12
        return 24

    async def station_table(self, forecast_hours: int = 6) -> StationTable:
        """Decoded bulletin for a forecast period, fetched once."""
        if self.source is None:
            return {}
        if forecast_hours not in self._tables:
            self._tables[forecast_hours] = asyncio.ensure_future(self._load_table(forecast_hours))
        return await self._tables[forecast_hours]

    async def _load_table(self, forecast_hours: int) -> StationTable:
        table = await call_blocking(
            self.source.fetch_winds_aloft, forecast_hours,
            timeout=self.timeout, default={}, label="winds aloft",
        )
        if not table:
            logger.warning("No winds aloft data, falling back to synthetic winds")
            return {}
        logger.info("Loaded winds aloft for %d stations (%02dh forecast)", len(table), forecast_hours)
        return table

    async def wind_at(self, point: NavPoint, altitude_ft: float, forecast_hours: int = 6) -> WindSample:
        """Wind at one point and altitude."""
        table = await self.station_table(forecast_hours)
        station = self._nearest_station(point, table)
        if station is not None:
            sample = wind_at_altitude(table[station], altitude_ft)
            if sample is not None:
                logger.debug("Wind at %s %.0fft from %s: %s/%s", point, altitude_ft, station, sample.direction, sample.speed)
                return WindSample(sample.altitude_ft, sample.direction, sample.speed, sample.temperature_c, f"station:{station}")
        return self.synthetic_wind(point, altitude_ft)

    async def average_wind(
        self,
        waypoints: Sequence[NavPoint],
        altitude_ft: float,
        leg_nm: Optional[float] = None,
        climb_buffer_nm: float = 0.0,
        descent_buffer_nm: float = 0.0,
        departure_time: Optional[datetime] = None,
    ) -> WindSample:
        """
        Average wind along a route at one altitude.

        Args:
            waypoints: Route polyline, at least two points
            altitude_ft: Altitude to sample
            leg_nm: Route length (computed from the waypoints when None)
            climb_buffer_nm: Distance after departure left out of the sampling
            descent_buffer_nm: Distance before arrival left out of the sampling
            departure_time: Used to choose the forecast period

        Returns:
            WindSample whose source is ``synthetic`` if any leg sample was
            synthetic, otherwise ``winds-aloft``
        """
        if len(waypoints) < 2:
            raise ValueError("A route needs at least two waypoints")

        forecast_hours = self.forecast_hours_for(departure_time)
        points = self._sample_points(waypoints, leg_nm, climb_buffer_nm, descent_buffer_nm)
        samples = await asyncio.gather(*(self.wind_at(p, altitude_ft, forecast_hours) for p, _ in points))

        direction, speed = average_wind(
            (s.direction, s.speed, weight) for s, (_, weight) in zip(samples, points)
        )
        synthetic = any(s.source == SYNTHETIC_SOURCE for s in samples)
        return WindSample(
            altitude_ft=int(altitude_ft),
            direction=direction,
            speed=speed,
            source=SYNTHETIC_SOURCE if synthetic else ROUTE_SOURCE,
        )

    @staticmethod
    def _sample_points(
        waypoints: Sequence[NavPoint],
        leg_nm: Optional[float],
        climb_buffer_nm: float,
        descent_buffer_nm: float,
    ) -> List[Tuple[NavPoint, float]]:
        """(point, weight) per leg, restricted to the window outside the buffers."""
        total = path_distance(list(waypoints))
        length = leg_nm if leg_nm is not None else total
        window_start = max(0.0, climb_buffer_nm)
        window_end = min(total, length - max(0.0, descent_buffer_nm))

        points = []
        travelled = 0.0
        for a, b in zip(waypoints, waypoints[1:]):
            leg = a.distance_to(b)
            start = max(travelled, window_start)
            end = min(travelled + leg, window_end)
            if end > start:
                middle = (start + end) / 2 - travelled
                points.append((a.midpoint(b, middle / leg), end - start))
            travelled += leg

        if not points:
            # Buffers cover the whole route: sample its middle
            points.append((_point_along(waypoints, total / 2), 1.0))
        return points

    def _nearest_station(self, point: NavPoint, table: StationTable) -> Optional[str]:
        best = None
        best_distance = self.MAX_STATION_DISTANCE_NM
        for code in sorted(table):
            location = self.stations.get(code)
            if location is None:
                continue
            distance = point.distance_to(location)
            if distance <= best_distance:
                best, best_distance = code, distance
        return best

    @classmethod
    def synthetic_wind(cls, point: NavPoint, altitude_ft: float) -> WindSample:
        """
        Prevailing westerly used when no live data is available.

        Speed grows with altitude (up to FL390) and with latitude.
        """
        altitude_fraction = min(max(altitude_ft, 0.0) / 39000.0, 1.0)
        latitude_factor = 0.5 + min(abs(point.latitude), 60.0) / 60.0
        speed = 10.0 + 50.0 * altitude_fraction * latitude_factor
        return WindSample(int(altitude_ft), cls.SYNTHETIC_DIRECTION, round(speed, 1), None, SYNTHETIC_SOURCE)


def _point_along(waypoints: Sequence[NavPoint], distance_nm: float) -> NavPoint:
    travelled = 0.0
    for a, b in zip(waypoints, waypoints[1:]):
        bearing, leg = a.haversine_distance(b)
        if travelled + leg >= distance_nm:
            return a.point_from_bearing_distance(bearing, distance_nm - travelled)
        travelled += leg
    return waypoints[-1]
