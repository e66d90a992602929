import pytest
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from aerotrip.config import OperatingConfig
from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint
from aerotrip.models.runway import Runway
from aerotrip.sources.base import AirportReference, GroundRoute, GroundRouter, NearbyAirport
from aerotrip.sources.ground_route import HeuristicGroundRouter
from aerotrip.weather.models import WeatherReport
from aerotrip.weather.parser import WeatherParser

REFERENCE_TIME = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


class FakeAirportReference(AirportReference):
    """In-memory airport reference that records its calls."""

    def __init__(self, airports: List[Airport]):
        self.airports = {a.ident: a for a in airports}
        self.get_calls: List[str] = []
        self.search_calls: List[tuple] = []

    async def get(self, code: str) -> Optional[Airport]:
        self.get_calls.append(code)
        return self.airports.get(code.strip().upper())

    async def search(self, latitude, longitude, radius_nm, min_runway_length_ft=None, paved_only=False):
        self.search_calls.append((latitude, longitude, radius_nm))
        centre = NavPoint(latitude, longitude)
        hits = [
            NearbyAirport(a.ident, a.navpoint.distance_to(centre), a.name)
            for a in self.airports.values()
        ]
        hits = [h for h in hits if h.distance_nm <= radius_nm]
        return sorted(hits, key=lambda h: (h.distance_nm, h.ident))


class FakeGroundRouter(GroundRouter):
    """
    Fixed drive times for airports named in ``minutes``.

    Other drives use the straight-line estimate, reported under ``source``.
    Airport navpoints carry the airport ident as their name, which is how a
    drive is matched to an airport.
    """

    def __init__(self, minutes: Optional[Dict[str, int]] = None, source: str = "osrm", traffic: bool = False):
        self.minutes = minutes or {}
        self.source = source
        self.traffic = traffic
        self.calls: List[tuple] = []
        self._heuristic = HeuristicGroundRouter()

    async def estimate(self, origin, destination, departure_time=None) -> GroundRoute:
        self.calls.append((origin, destination, departure_time))
        for point in (origin, destination):
            if point.name in self.minutes:
                return GroundRoute(
                    duration_minutes=self.minutes[point.name],
                    distance_miles=round(origin.distance_to(destination) * 1.15078, 1),
                    source=self.source,
                    polyline=(origin, destination),
                    has_traffic_data=self.traffic,
                )
        route = self._heuristic.estimate_sync(origin, destination, departure_time)
        return replace(route, source=self.source, has_traffic_data=self.traffic)


class FakeWeatherSource:
    """Synchronous weather provider returning canned reports."""

    def __init__(self, metars: Optional[Dict[str, str]] = None, tafs: Optional[Dict[str, str]] = None):
        self.metars = metars or {}
        self.tafs = tafs or {}
        self.metar_calls: List[str] = []
        self.taf_calls: List[str] = []

    def fetch_metar(self, icao: str) -> Optional[WeatherReport]:
        self.metar_calls.append(icao)
        raw = self.metars.get(icao)
        return WeatherParser.parse_metar(raw, source="fake", reference_time=REFERENCE_TIME) if raw else None

    def fetch_taf(self, icao: str) -> Optional[WeatherReport]:
        self.taf_calls.append(icao)
        raw = self.tafs.get(icao)
        return WeatherParser.parse_taf(raw, source="fake", reference_time=REFERENCE_TIME) if raw else None


def paved_runway(ident: str, le: str, he: str, length: float, width: float = 150, surface: str = "ASPH") -> Runway:
    return Runway(
        airport_ident=ident,
        length_ft=length,
        width_ft=width,
        surface=surface,
        lighted=True,
        closed=False,
        le_ident=le,
        he_ident=he,
    )


@pytest.fixture
def test_cache_dir(tmp_path) -> Path:
    """Return a temporary directory for cache testing."""
    return tmp_path / 'cache'


@pytest.fixture
def config_data() -> dict:
    return {
        'home_base': 'KFRG',
        'cruise_speed_ktas': 300,
        'climb_rate_fpm': 2000,
        'descent_rate_fpm': 2500,
        'altitude_rules': {
            'under_100nm': {'max_altitude_ft': 10000},
            '100_to_350nm': {'max_altitude_ft': 24000},
            'over_350nm': {'max_altitude_ft': 45000},
        },
        'min_runway_length_ft': 4000,
        'min_runway_width_ft': 75,
        'max_wind_kt': 35,
        'max_crosswind_kt': 25,
    }


@pytest.fixture
def config(config_data) -> OperatingConfig:
    return OperatingConfig.from_dict(config_data)


@pytest.fixture
def airports() -> Dict[str, Airport]:
    """Long Island and southern Maine airports used across the planning tests."""
    return {
        'KFRG': Airport(
            'KFRG', 'Republic Airport', 40.7288, -73.4134, 82,
            (paved_runway('KFRG', '14', '32', 6833), paved_runway('KFRG', '01', '19', 5516)),
            jet_a=True, has_instrument_approach=True,
        ),
        'KISP': Airport(
            'KISP', 'Long Island MacArthur Airport', 40.7952, -73.1002, 99,
            (paved_runway('KISP', '06', '24', 7006), paved_runway('KISP', '15R', '33L', 5186)),
            jet_a=True, has_instrument_approach=True,
        ),
        'KHWV': Airport(
            'KHWV', 'Brookhaven Airport', 40.8219, -72.8688, 81,
            (paved_runway('KHWV', '06', '24', 4200, 100),),
            jet_a=None,
        ),
        'KPWM': Airport(
            'KPWM', 'Portland International Jetport', 43.6462, -70.3093, 76,
            (paved_runway('KPWM', '11', '29', 7200), paved_runway('KPWM', '18', '36', 6100)),
            jet_a=True, has_instrument_approach=True,
        ),
        'KSFM': Airport(
            'KSFM', 'Sanford Seacoast Regional Airport', 43.3939, -70.7080, 244,
            (paved_runway('KSFM', '07', '25', 6389),),
            jet_a=True, has_instrument_approach=True,
        ),
    }


@pytest.fixture
def fake_airports():
    return FakeAirportReference


@pytest.fixture
def fake_router():
    return FakeGroundRouter


@pytest.fixture
def fake_weather_source():
    return FakeWeatherSource


@pytest.fixture
def make_runway():
    return paved_runway
