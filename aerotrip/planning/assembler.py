"""
Trip planning entry point.

A trip flies from the home base to an airport near the pickup location,
drives to the pickup location and back, flies to an airport near the
delivery location and drives to the delivery location. ``TripPlanner.plan``
checks the departure wind, qualifies both airports concurrently, times every
leg concurrently and derives the scenario bounds.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from aerotrip.config import OperatingConfig
from aerotrip.exceptions import ConfigurationMissing
from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint
from aerotrip.models.segment import SegmentType, TripSegment
from aerotrip.planning.departure_check import DepartureWindCheck
from aerotrip.planning.flight_time import FlightTimeModel, FlightTimeResult
from aerotrip.planning.qualification import AirportCandidate, QualificationPipeline, TripEnd
from aerotrip.planning.scenarios import ScenarioGenerator, ScenarioResult, total_minutes
from aerotrip.planning.wind_profile import WindProfileEstimator
from aerotrip.sources.acquisition import RequestWeatherCache, WeatherAcquisition
from aerotrip.sources.advisory import ScenarioAdvisory
from aerotrip.sources.avwx import AvWxSource
from aerotrip.sources.base import AirportReference, GroundRoute, GroundRouter
from aerotrip.sources.ground_route import HeuristicGroundRouter, traffic_multiplier

logger = logging.getLogger(__name__)

# Added to the straight-line flying time when estimating arrival at a trip end
ARRIVAL_ALLOWANCE_MIN = 15
LOADING_TIME_MIN = 30

BASE_CONFIDENCE = 60
ROUTED_GROUND_BONUS = 15
CURRENT_WEATHER_BONUS = 15
TRAFFIC_DATA_BONUS = 10

FLIGHT_ROUTE_QUALITY = "great-circle"


@dataclass
class TripRequest:
    """
    A transport request.

    Attributes:
        pickup_location / delivery_location: Ground locations
        departure_time: Planned take-off from the home base
        pickup_airport / destination_airport: Optional airport codes that
            bypass qualification for that end
    """

    pickup_location: NavPoint
    delivery_location: NavPoint
    departure_time: datetime
    pickup_airport: Optional[str] = None
    destination_airport: Optional[str] = None


@dataclass
class ApprovalBlock:
    required: bool = False
    pickup_violations: List[Dict[str, Any]] = field(default_factory=list)
    delivery_violations: List[Dict[str, Any]] = field(default_factory=list)
    rejected: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'required': self.required,
            'pickup_violations': self.pickup_violations,
            'delivery_violations': self.delivery_violations,
            'rejected': self.rejected,
        }


@dataclass
class TripPlan:
    """Result of a planning request."""

    segments: List[TripSegment]
    total_minutes: int
    departure_time: datetime
    arrival_time: datetime
    scenarios: ScenarioResult
    confidence: int
    approval: ApprovalBlock
    home_airport: Airport
    pickup: AirportCandidate
    destination: AirportCandidate
    flight_legs: Dict[str, FlightTimeResult] = field(default_factory=dict)
    advisories: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'segments': [s.to_dict() for s in self.segments],
            'total_minutes': self.total_minutes,
            'departure_time': self.departure_time.isoformat(),
            'arrival_time': self.arrival_time.isoformat(),
            'confidence': self.confidence,
            'scenarios': self.scenarios.to_dict(),
            'approval': self.approval.to_dict(),
            'airports': {
                'home': self.home_airport.ident,
                'pickup': self.pickup.to_dict(),
                'destination': self.destination.to_dict(),
            },
            'flight_legs': {name: leg.to_dict() for name, leg in self.flight_legs.items()},
            'advisories': self.advisories,
        }


class TripPlanner:
    """
    Plan trips for one operating configuration.

    Every call to ``plan`` owns its caches, so one planner can serve
    concurrent requests.

    Example:
        planner = TripPlanner(config, OurAirportsReference("cache"), OsrmGroundRouter())
        plan = await planner.plan(TripRequest(pickup, delivery, departure))
        print(plan.total_minutes, plan.scenarios.conservative)
    """

    def __init__(
        self,
        config: OperatingConfig,
        airports: AirportReference,
        ground_router: Optional[GroundRouter] = None,
        weather: Optional[WeatherAcquisition] = None,
        winds: Optional[AvWxSource] = None,
        advisory: Optional[ScenarioAdvisory] = None,
        reference_time: Optional[datetime] = None,
    ):
        """
        Args:
            config: Operating configuration
            airports: Airport reference data
            ground_router: Drive estimates (heuristic when None)
            weather: Weather acquisition (aviationweather.gov when None)
            winds: Winds-aloft provider; None uses synthetic winds
            advisory: Optional reviewer of the scenario bounds
            reference_time: "Now" used to pick the winds-aloft forecast period
        """
        self.config = config
        self.airports = airports
        self.ground_router = ground_router or HeuristicGroundRouter()
        self.weather = weather or WeatherAcquisition(timeout=config.fetch_timeout_s)
        self.winds = winds
        self.scenarios = ScenarioGenerator(advisory)
        self.reference_time = reference_time

    async def plan(self, request: TripRequest) -> TripPlan:
        """
        Plan a trip.

        Raises:
            ConfigurationMissing: if the home base cannot be resolved
            BlockingWeatherViolation: if departure wind limits are exceeded
            NoViableAirport: if either trip end has no qualifying airport
        """
        config = self.config
        if request.departure_time.tzinfo is None:
            request = replace(request, departure_time=request.departure_time.replace(tzinfo=timezone.utc))
        weather = RequestWeatherCache(self.weather)

        home = await self.airports.get(config.home_base)
        if home is None:
            raise ConfigurationMissing(
                f"Home base {config.home_base} not found in airport reference data",
                details={'home_base': config.home_base},
            )

        await DepartureWindCheck(config, weather).run(home)

        pickup_eta = request.departure_time + timedelta(
            minutes=self._rough_flight_minutes(home.navpoint, request.pickup_location)
        )
        delivery_eta = pickup_eta + timedelta(
            minutes=LOADING_TIME_MIN + self._rough_flight_minutes(request.pickup_location, request.delivery_location)
        )

        pipeline = QualificationPipeline(config, self.airports, self.ground_router, weather)
        pickup, destination = await asyncio.gather(
            pipeline.select(TripEnd('pickup', request.pickup_location, request.pickup_airport, pickup_eta, home)),
            pipeline.select(TripEnd('delivery', request.delivery_location, request.destination_airport, delivery_eta, home)),
        )

        model = FlightTimeModel(config, WindProfileEstimator(
            self.winds, reference_time=self.reference_time, timeout=config.fetch_timeout_s,
        ))
        pickup_airport = pickup.airport
        destination_airport = destination.airport
        departure_back = pickup_eta + timedelta(minutes=LOADING_TIME_MIN)

        leg1 = self._flight(model, weather, home, pickup_airport, False, request.departure_time)
        leg4 = self._flight(model, weather, pickup_airport, destination_airport, True, departure_back)
        (leg1_result, leg4_result, leg2_route, leg3_route, leg5_route, home_wx, pickup_wx, dest_wx) = await asyncio.gather(
            leg1,
            leg4,
            self.ground_router.estimate(pickup_airport.navpoint, request.pickup_location, pickup_eta),
            self.ground_router.estimate(request.pickup_location, pickup_airport.navpoint, departure_back),
            self.ground_router.estimate(destination_airport.navpoint, request.delivery_location, delivery_eta),
            weather.fetch(home.ident),
            weather.fetch(pickup_airport.ident),
            weather.fetch(destination_airport.ident),
        )

        segments = self._segments(
            home, pickup_airport, destination_airport,
            leg1_result, leg2_route, leg3_route, leg4_result, leg5_route,
        )
        total = total_minutes(segments)
        arrival = request.departure_time + timedelta(minutes=total)

        flight_legs = {}
        if leg1_result is not None:
            flight_legs['home_to_pickup'] = leg1_result
        if leg4_result is not None:
            flight_legs['pickup_to_destination'] = leg4_result

        weather_delay = sum(leg.weather_delay_minutes for leg in flight_legs.values())
        max_headwind = max((leg.cruise_headwind for leg in flight_legs.values()), default=0.0)
        scenarios = await self.scenarios.generate(segments, total, weather_delay, max_headwind)

        flight_endpoint_weather = []
        if leg1_result is not None:
            flight_endpoint_weather += [home_wx, pickup_wx]
        if leg4_result is not None:
            flight_endpoint_weather += [pickup_wx, dest_wx]
        confidence = self.confidence([leg2_route, leg3_route, leg5_route], flight_endpoint_weather)

        plan = TripPlan(
            segments=segments,
            total_minutes=total,
            departure_time=request.departure_time,
            arrival_time=arrival,
            scenarios=scenarios,
            confidence=confidence,
            approval=self._approval(pipeline, pickup, destination),
            home_airport=home,
            pickup=pickup,
            destination=destination,
            flight_legs=flight_legs,
            advisories=self.advisories(weather_delay, max_headwind, request.departure_time),
        )
        logger.info(
            f"Planned trip {home.ident}->{pickup_airport.ident}->{destination_airport.ident}: "
            f"{total} min (conservative {scenarios.conservative}, optimistic {scenarios.optimistic}), "
            f"confidence {confidence}"
        )
        return plan

    def _rough_flight_minutes(self, origin: NavPoint, destination: NavPoint) -> float:
        distance = origin.distance_to(destination)
        return distance / self.config.cruise_speed_ktas * 60 + ARRIVAL_ALLOWANCE_MIN

    async def _flight(
        self,
        model: FlightTimeModel,
        weather: WeatherAcquisition,
        origin: Airport,
        destination: Airport,
        use_arrival_forecast: bool,
        departure_time: datetime,
    ) -> Optional[FlightTimeResult]:
        if origin.ident == destination.ident:
            return None
        origin_wx, destination_wx = await asyncio.gather(
            weather.fetch_airport_weather(origin.ident),
            weather.fetch_airport_weather(destination.ident),
        )
        distance = origin.navpoint.distance_to(destination.navpoint)
        return await model.compute(
            distance, origin_wx, destination_wx, origin, destination,
            use_arrival_forecast, departure_time=departure_time,
        )

    @staticmethod
    def _segments(
        home: Airport,
        pickup: Airport,
        destination: Airport,
        leg1: Optional[FlightTimeResult],
        leg2: GroundRoute,
        leg3: GroundRoute,
        leg4: Optional[FlightTimeResult],
        leg5: GroundRoute,
    ) -> List[TripSegment]:
        def label(airport: Airport, role: str) -> str:
            if airport.ident == home.ident:
                return f"{airport.ident} (Home Base)"
            return f"{airport.ident} ({role})"

        pickup_label = label(pickup, "Pickup Airport")
        destination_label = label(destination, "Destination Airport")

        segments = []
        if leg1 is not None:
            segments.append(TripSegment(
                SegmentType.FLIGHT, label(home, "Home Base"), pickup_label, leg1.minutes, leg1.distance_nm,
                (home.navpoint, pickup.navpoint), FLIGHT_ROUTE_QUALITY,
            ))
        segments.append(_ground_segment(pickup_label, "Pickup Location", leg2))
        segments.append(_ground_segment("Pickup Location", pickup_label, leg3))
        if leg4 is not None:
            segments.append(TripSegment(
                SegmentType.FLIGHT, pickup_label, destination_label, leg4.minutes, leg4.distance_nm,
                (pickup.navpoint, destination.navpoint), FLIGHT_ROUTE_QUALITY,
            ))
        segments.append(_ground_segment(destination_label, "Delivery Location", leg5))
        return segments

    @staticmethod
    def confidence(ground_routes: List[GroundRoute], flight_endpoint_weather: List[Any]) -> int:
        """
        Confidence score for a plan.

        Starts at 60; +15 when every ground leg came from a routing service,
        +15 when current conditions existed at every flight endpoint, +10 when
        any ground leg carried real-time traffic data.
        """
        score = BASE_CONFIDENCE
        if all(not route.is_heuristic for route in ground_routes):
            score += ROUTED_GROUND_BONUS
        if all(report is not None for report in flight_endpoint_weather):
            score += CURRENT_WEATHER_BONUS
        if any(route.has_traffic_data for route in ground_routes):
            score += TRAFFIC_DATA_BONUS
        return min(score, 100)

    @staticmethod
    def advisories(weather_delay: float, max_headwind: float, departure_time: datetime) -> List[str]:
        advisories = []
        if weather_delay > 10:
            advisories.append("Significant weather delays expected")
        if max_headwind > 20:
            advisories.append("Strong headwinds may increase flight time")
        if traffic_multiplier(departure_time) > 1.3:
            advisories.append("Heavy traffic expected on ground segments")
        return advisories

    @staticmethod
    def _approval(
        pipeline: QualificationPipeline,
        pickup: AirportCandidate,
        destination: AirportCandidate,
    ) -> ApprovalBlock:
        rejected = {}
        for label, selected in (('pickup', pickup), ('delivery', destination)):
            rejected[label] = [
                c.summary() for c in pipeline.last_evaluated.get(label, [])
                if c.ident != selected.ident
            ]
        return ApprovalBlock(
            required=pickup.requires_approval or destination.requires_approval,
            pickup_violations=[v.to_dict() for v in pickup.soft_violations] if pickup.requires_approval else [],
            delivery_violations=[v.to_dict() for v in destination.soft_violations] if destination.requires_approval else [],
            rejected=rejected,
        )


def _ground_segment(origin: str, destination: str, route: GroundRoute) -> TripSegment:
    return TripSegment(
        SegmentType.GROUND, origin, destination, route.duration_minutes, route.distance_miles,
        route.polyline, route.source,
    )
