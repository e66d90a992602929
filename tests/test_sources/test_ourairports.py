"""Tests for OurAirportsReference, using in-memory CSV data."""

import asyncio
import threading
import time

import pandas as pd
import pytest

from aerotrip.sources.ourairports import OurAirportsReference


AIRPORTS = pd.DataFrame([
    {'ident': 'KFRG', 'type': 'medium_airport', 'name': 'Republic Airport', 'latitude_deg': 40.7288,
     'longitude_deg': -73.4134, 'elevation_ft': 82, 'gps_code': 'KFRG', 'local_code': 'FRG', 'iata_code': 'FRG'},
    {'ident': 'KISP', 'type': 'large_airport', 'name': 'Long Island MacArthur Airport', 'latitude_deg': 40.7952,
     'longitude_deg': -73.1002, 'elevation_ft': 99, 'gps_code': 'KISP', 'local_code': 'ISP', 'iata_code': 'ISP'},
    {'ident': 'KHWV', 'type': 'small_airport', 'name': 'Brookhaven Airport', 'latitude_deg': 40.8219,
     'longitude_deg': -72.8688, 'elevation_ft': 81, 'gps_code': None, 'local_code': None, 'iata_code': None},
    {'ident': '0NY9', 'type': 'small_airport', 'name': 'Meadow Strip', 'latitude_deg': 40.7600,
     'longitude_deg': -73.3000, 'elevation_ft': 120, 'gps_code': '0NY9', 'local_code': '0NY9', 'iata_code': None},
    {'ident': 'NY22', 'type': 'heliport', 'name': 'Hospital Heliport', 'latitude_deg': 40.7300,
     'longitude_deg': -73.4000, 'elevation_ft': 50, 'gps_code': 'NY22', 'local_code': 'NY22', 'iata_code': None},
])

RUNWAYS = pd.DataFrame([
    {'airport_ident': 'KFRG', 'length_ft': 6833, 'width_ft': 150, 'surface': 'ASP', 'lighted': 1, 'closed': 0,
     'le_ident': '14', 'le_heading_degT': 127.0, 'he_ident': '32', 'he_heading_degT': 307.0},
    {'airport_ident': 'KFRG', 'length_ft': 5516, 'width_ft': 150, 'surface': 'ASP', 'lighted': 1, 'closed': 0,
     'le_ident': '1', 'le_heading_degT': None, 'he_ident': '19', 'he_heading_degT': None},
    {'airport_ident': 'KISP', 'length_ft': 7006, 'width_ft': 150, 'surface': 'ASP', 'lighted': 1, 'closed': 0,
     'le_ident': '6', 'le_heading_degT': None, 'he_ident': '24', 'he_heading_degT': None},
    {'airport_ident': 'KHWV', 'length_ft': 4200, 'width_ft': 100, 'surface': 'ASP', 'lighted': 1, 'closed': 0,
     'le_ident': '6', 'le_heading_degT': None, 'he_ident': '24', 'he_heading_degT': None},
    {'airport_ident': 'KHWV', 'length_ft': 4255, 'width_ft': 75, 'surface': 'ASP', 'lighted': 0, 'closed': 1,
     'le_ident': '15', 'le_heading_degT': None, 'he_ident': '33', 'he_heading_degT': None},
    {'airport_ident': '0NY9', 'length_ft': 2400, 'width_ft': 60, 'surface': 'TURF', 'lighted': 0, 'closed': 0,
     'le_ident': '9', 'le_heading_degT': None, 'he_ident': '27', 'he_heading_degT': None},
])


class InMemoryAirports(OurAirportsReference):
    """OurAirports with the downloads replaced by fixed frames."""

    downloads = 0

    def fetch_airports(self):
        InMemoryAirports.downloads += 1
        return AIRPORTS.copy()

    def fetch_runways(self):
        return RUNWAYS.copy()


@pytest.fixture
def reference(test_cache_dir):
    InMemoryAirports.downloads = 0
    return InMemoryAirports(str(test_cache_dir))


class TestLookup:

    def test_by_ident(self, reference):
        airport = reference.lookup("KFRG")

        assert airport.name == "Republic Airport"
        assert airport.elevation_ft == 82
        assert len(airport.runways) == 2
        assert airport.longest_runway_length_ft == 6833
        assert airport.jet_a is None

    def test_by_local_code(self, reference):
        assert reference.lookup("isp").ident == "KISP"

    def test_three_letter_k_prefix(self, reference):
        assert reference.lookup("HWV").ident == "KHWV"

    def test_closed_runways_dropped(self, reference):
        airport = reference.lookup("KHWV")
        assert [r.name for r in airport.runways] == ["6/24"]

    def test_heliports_excluded(self, reference):
        assert reference.lookup("NY22") is None

    def test_unknown(self, reference):
        assert reference.lookup("ZZZZ") is None


class TestFindNearby:

    def test_sorted_by_distance(self, reference):
        hits = reference.find_nearby(40.7288, -73.4134, 40)

        assert [h.ident for h in hits] == ["KFRG", "0NY9", "KISP", "KHWV"]
        assert hits[0].distance_nm == pytest.approx(0.0, abs=0.01)

    def test_radius(self, reference):
        assert [h.ident for h in reference.find_nearby(40.7288, -73.4134, 10)] == ["KFRG", "0NY9"]

    def test_paved_only(self, reference):
        hits = reference.find_nearby(40.7288, -73.4134, 40, paved_only=True)
        assert "0NY9" not in [h.ident for h in hits]

    def test_min_runway_length(self, reference):
        hits = reference.find_nearby(40.7288, -73.4134, 40, min_runway_length_ft=5000)
        assert [h.ident for h in hits] == ["KFRG", "KISP"]


class TestAsync:

    def test_get_and_search(self, reference):
        async def run():
            return await reference.get("KISP"), await reference.search(40.7952, -73.1002, 5)

        airport, hits = asyncio.run(run())
        assert airport.ident == "KISP"
        assert [h.ident for h in hits] == ["KISP"]


class TestCache:

    def test_second_instance_reads_cache(self, reference, test_cache_dir):
        reference.lookup("KFRG")
        assert InMemoryAirports.downloads == 1
        assert (test_cache_dir / "inmemoryairports" / "airports.csv").exists()

        again = InMemoryAirports(str(test_cache_dir))
        assert again.lookup("KISP").ident == "KISP"
        assert InMemoryAirports.downloads == 1


class SlowAirports(InMemoryAirports):
    """In-memory airports whose first download takes longer than a lookup may."""

    def fetch_airports(self):
        time.sleep(0.3)
        return super().fetch_airports()


class TestLoading:

    def test_concurrent_gets_load_once(self, reference):
        async def run():
            return await asyncio.gather(*(reference.get(code) for code in ("KFRG", "KISP", "KHWV", "KFRG")))

        airports = asyncio.run(run())

        assert [a.ident for a in airports] == ["KFRG", "KISP", "KHWV", "KFRG"]
        assert InMemoryAirports.downloads == 1

    def test_threads_load_once(self, reference):
        threads = [threading.Thread(target=reference.lookup, args=("KFRG",)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert InMemoryAirports.downloads == 1

    def test_load_not_bounded_by_lookup_timeout(self, test_cache_dir):
        InMemoryAirports.downloads = 0
        reference = SlowAirports(str(test_cache_dir), timeout=0.1)

        airport = asyncio.run(reference.get("KFRG"))

        assert airport is not None
        assert airport.ident == "KFRG"
        assert reference.loaded

    def test_explicit_load(self, reference):
        assert not reference.loaded
        reference.load()
        assert reference.loaded
        assert InMemoryAirports.downloads == 1
