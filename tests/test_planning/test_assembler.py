"""End-to-end planning tests with in-memory airports, routes and weather."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from aerotrip.exceptions import BlockingWeatherViolation, ConfigurationMissing, NoViableAirport
from aerotrip.models.navpoint import NavPoint
from aerotrip.models.segment import SegmentType
from aerotrip.planning.assembler import TripPlanner, TripRequest
from aerotrip.sources.acquisition import WeatherAcquisition
from aerotrip.sources.base import GroundRoute

PORTLAND_DOWNTOWN = NavPoint(43.6591, -70.2568)
SANFORD = NavPoint(43.43, -70.77)
DEPARTURE = datetime(2026, 10, 21, 14, 0, tzinfo=timezone.utc)

CLEAN = "{} 211356Z 27008KT 10SM FEW050 15/05 A3005"
GUSTY = "{} 211356Z 27040G50KT 10SM FEW050 12/02 A2985"


def _clean_metars(*codes):
    return {code: CLEAN.format(code) for code in codes}


@pytest.fixture
def make_planner(config, airports, fake_airports, fake_router, fake_weather_source):
    def make(metars=None, traffic=False, idents=('KFRG', 'KISP', 'KHWV', 'KPWM', 'KSFM'), planner_config=None):
        reference = fake_airports([airports[i] for i in idents])
        router = fake_router(traffic=traffic)
        source = fake_weather_source(metars)
        planner = TripPlanner(
            planner_config or config, reference, router, WeatherAcquisition(source),
        )
        return planner, reference, router, source
    return make


class TestTripPlanner:

    def test_full_trip(self, make_planner):
        planner, _, _, source = make_planner(_clean_metars('KFRG', 'KPWM', 'KSFM'))

        plan = asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))

        assert plan.pickup.ident == 'KPWM'
        assert plan.destination.ident == 'KSFM'
        assert [(s.type, s.origin, s.destination) for s in plan.segments] == [
            (SegmentType.FLIGHT, "KFRG (Home Base)", "KPWM (Pickup Airport)"),
            (SegmentType.GROUND, "KPWM (Pickup Airport)", "Pickup Location"),
            (SegmentType.GROUND, "Pickup Location", "KPWM (Pickup Airport)"),
            (SegmentType.FLIGHT, "KPWM (Pickup Airport)", "KSFM (Destination Airport)"),
            (SegmentType.GROUND, "KSFM (Destination Airport)", "Delivery Location"),
        ]
        assert plan.total_minutes == sum(s.duration_minutes for s in plan.segments)
        assert plan.scenarios.conservative > plan.total_minutes > plan.scenarios.optimistic
        assert plan.scenarios.expected == plan.total_minutes
        assert plan.confidence == 90
        assert not plan.approval.required
        assert plan.arrival_time > plan.departure_time
        assert set(plan.flight_legs) == {'home_to_pickup', 'pickup_to_destination'}
        assert plan.flight_legs['home_to_pickup'].cruise_altitude_ft == 24000
        assert plan.segments[0].route_quality == "great-circle"
        assert plan.segments[1].route_quality == "osrm"

        # Reports are fetched once per request even though several steps use them
        assert source.metar_calls.count('KPWM') == 1
        assert source.taf_calls.count('KPWM') == 1

    def test_to_dict_is_serializable_and_stable(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG', 'KPWM', 'KSFM'))
        request = TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)

        first = asyncio.run(planner.plan(request)).to_dict()
        second = asyncio.run(planner.plan(request)).to_dict()

        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)
        assert first['airports']['pickup']['airport']['ident'] == 'KPWM'
        assert first['departure_time'] == "2026-10-21T14:00:00+00:00"
        assert len(first['segments']) == 5

    def test_traffic_data_confidence(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG', 'KPWM', 'KSFM'), traffic=True)
        plan = asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))
        assert plan.confidence == 100

    def test_missing_weather_lowers_confidence(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG', 'KPWM'))
        plan = asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))
        assert plan.confidence == 75

    def test_departure_wind_blocks_before_search(self, make_planner):
        metars = _clean_metars('KPWM', 'KSFM')
        metars['KFRG'] = "KFRG 211356Z 27040G55KT 10SM FEW050 12/02 A2985"
        planner, reference, router, _ = make_planner(metars)

        with pytest.raises(BlockingWeatherViolation) as excinfo:
            asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))

        assert excinfo.value.details['wind_gust'] == 55
        assert reference.search_calls == []
        assert router.calls == []

    def test_local_trip_stays_at_home(self, make_planner):
        planner, reference, _, _ = make_planner(_clean_metars('KFRG'))
        request = TripRequest(NavPoint(40.75, -73.35), NavPoint(40.70, -73.50), DEPARTURE)

        plan = asyncio.run(planner.plan(request))

        assert [s.type for s in plan.segments] == [SegmentType.GROUND] * 3
        assert plan.segments[0].origin == "KFRG (Home Base)"
        assert plan.segments[2].destination == "Delivery Location"
        assert plan.flight_legs == {}
        assert plan.confidence == 90
        assert reference.search_calls == []

    def test_home_base_missing(self, make_planner):
        planner, _, _, _ = make_planner(idents=('KPWM', 'KSFM'))

        with pytest.raises(ConfigurationMissing) as excinfo:
            asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))

        assert excinfo.value.details == {'home_base': 'KFRG'}

    def test_forced_pickup(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG', 'KPWM', 'KSFM'))
        request = TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE, pickup_airport='KSFM')

        plan = asyncio.run(planner.plan(request))

        assert plan.pickup.ident == 'KSFM'
        assert plan.pickup.forced
        # Same airport at both ends: no second flight
        assert [s.type for s in plan.segments] == [
            SegmentType.FLIGHT, SegmentType.GROUND, SegmentType.GROUND, SegmentType.GROUND,
        ]
        assert set(plan.flight_legs) == {'home_to_pickup'}

    def test_no_airport_at_delivery(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG'))

        with pytest.raises(NoViableAirport) as excinfo:
            asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, NavPoint(38.0, -60.0), DEPARTURE)))

        assert excinfo.value.details['trip_end'] == 'delivery'

    def test_naive_departure_is_utc(self, make_planner):
        planner, _, _, _ = make_planner(_clean_metars('KFRG', 'KPWM', 'KSFM'))

        plan = asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, datetime(2026, 10, 21, 14, 0))))

        assert plan.departure_time == DEPARTURE

    def test_soft_violations_require_approval(self, make_planner):
        metars = _clean_metars('KFRG')
        metars.update({code: GUSTY.format(code) for code in ('KPWM', 'KSFM')})
        planner, _, _, _ = make_planner(metars)

        plan = asyncio.run(planner.plan(TripRequest(PORTLAND_DOWNTOWN, SANFORD, DEPARTURE)))

        assert plan.pickup.ident == 'KPWM'
        assert plan.destination.ident == 'KSFM'
        assert plan.approval.required
        assert [v['rule'] for v in plan.approval.pickup_violations] == ['wind']
        assert [v['rule'] for v in plan.approval.delivery_violations] == ['wind']
        assert [r['ident'] for r in plan.approval.rejected['pickup']] == ['KSFM']
        assert "Significant weather delays expected" in plan.advisories
        assert plan.flight_legs['home_to_pickup'].weather_delay_minutes == 25


class TestPlanHelpers:

    def test_confidence(self):
        routed = GroundRoute(20, 15.0, "osrm")
        traffic = GroundRoute(20, 15.0, "osrm", has_traffic_data=True)
        heuristic = GroundRoute(20, 15.0, "heuristic")
        report = object()

        assert TripPlanner.confidence([routed, routed], [report, report]) == 90
        assert TripPlanner.confidence([routed, traffic], [report]) == 100
        assert TripPlanner.confidence([heuristic, routed], [report, None]) == 60
        assert TripPlanner.confidence([heuristic], []) == 75

    def test_advisories(self):
        quiet = datetime(2026, 10, 21, 23, 0, tzinfo=timezone.utc)
        rush = datetime(2026, 10, 21, 8, 0, tzinfo=timezone.utc)

        assert TripPlanner.advisories(0, 0, quiet) == []
        assert TripPlanner.advisories(11, 21, rush) == [
            "Significant weather delays expected",
            "Strong headwinds may increase flight time",
            "Heavy traffic expected on ground segments",
        ]
        assert TripPlanner.advisories(10, 20, quiet) == []
