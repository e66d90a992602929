"""
Airport qualification for one end of a trip.

Candidates found around a pickup or delivery location are run through a
chain of named stages. Hard stages remove a candidate from the pool; soft
stages only record violations, which make the candidate selectable with
approval. Stages that need external lookups fetch them concurrently for the
whole pool before checking each candidate.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from aerotrip.config import OperatingConfig
from aerotrip.exceptions import ConfigurationMissing, NoViableAirport
from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint
from aerotrip.models.runway import Runway
from aerotrip.sources.acquisition import WeatherAcquisition
from aerotrip.sources.base import AirportReference, GroundRoute, GroundRouter
from aerotrip.utils.runway_classifier import is_acceptable_surface
from aerotrip.weather.analysis import WeatherAnalyzer
from aerotrip.weather.models import WeatherReport

logger = logging.getLogger(__name__)


class StageOutcome(Enum):
    PASS = "pass"
    HARD_REJECT = "hard_reject"
    SOFT_REJECT = "soft_reject"


@dataclass(frozen=True)
class Violation:
    """One failed rule, with the observed value and the limit it broke."""

    rule: str
    message: str
    hard: bool
    value: Any = None
    limit: Any = None

    def to_dict(self) -> dict:
        return {
            'rule': self.rule,
            'message': self.message,
            'hard': self.hard,
            'value': self.value,
            'limit': self.limit,
        }


@dataclass
class StageResult:
    stage: str
    outcome: StageOutcome = StageOutcome.PASS
    violations: List[Violation] = field(default_factory=list)

    @classmethod
    def passed(cls, stage: str) -> 'StageResult':
        return cls(stage)

    @classmethod
    def hard(cls, stage: str, *violations: Violation) -> 'StageResult':
        return cls(stage, StageOutcome.HARD_REJECT, list(violations))

    @classmethod
    def soft(cls, stage: str, violations: List[Violation]) -> 'StageResult':
        if not violations:
            return cls(stage)
        return cls(stage, StageOutcome.SOFT_REJECT, list(violations))


@dataclass
class AirportCandidate:
    """
    An airport under consideration for one trip end.

    Attributes:
        airport: Reference data for the airport
        distance_nm: Straight-line distance to the trip-end location
        ground_route: Drive between the airport and the location, once known
        best_runway: Longest runway meeting the runway rules
        qualifying_runways: Every runway meeting the runway rules
        weather: Forecast (or degraded current report) used for the soft checks
        results: Stage results in evaluation order
        forced: Chosen by the caller or as the home base, no stages run
        requires_approval: Selected despite soft violations
    """

    airport: Airport
    distance_nm: float
    ground_route: Optional[GroundRoute] = None
    best_runway: Optional[Runway] = None
    qualifying_runways: List[Runway] = field(default_factory=list)
    weather: Optional[WeatherReport] = None
    results: List[StageResult] = field(default_factory=list)
    forced: bool = False
    requires_approval: bool = False

    @property
    def ident(self) -> str:
        return self.airport.ident

    @property
    def hard_violations(self) -> List[Violation]:
        return [v for r in self.results for v in r.violations if v.hard]

    @property
    def soft_violations(self) -> List[Violation]:
        return [v for r in self.results for v in r.violations if not v.hard]

    @property
    def passed(self) -> bool:
        return not self.hard_violations

    @property
    def ground_minutes(self) -> float:
        if self.ground_route is None:
            return float('inf')
        return float(self.ground_route.duration_minutes)

    def summary(self) -> dict:
        return {
            'ident': self.ident,
            'name': self.airport.name,
            'distance_nm': round(self.distance_nm, 1),
            'ground_minutes': self.ground_route.duration_minutes if self.ground_route else None,
            'violations': [v.to_dict() for v in self.hard_violations + self.soft_violations],
        }

    def to_dict(self) -> dict:
        return {
            'airport': self.airport.to_dict(),
            'distance_nm': round(self.distance_nm, 1),
            'ground_route': self.ground_route.to_dict() if self.ground_route else None,
            'best_runway': self.best_runway.to_dict() if self.best_runway else None,
            'weather': self.weather.to_dict() if self.weather else None,
            'passed': self.passed,
            'forced': self.forced,
            'requires_approval': self.requires_approval,
            'hard_violations': [v.to_dict() for v in self.hard_violations],
            'soft_violations': [v.to_dict() for v in self.soft_violations],
        }

    def __repr__(self) -> str:
        return f"AirportCandidate({self.ident}, {self.distance_nm:.1f}nm, passed={self.passed})"


@dataclass
class TripEnd:
    """
    One end of a trip to qualify an airport for.

    Attributes:
        label: ``pickup`` or ``delivery``, used in logs and errors
        location: Where the ground leg starts or ends
        forced_code: Airport code chosen by the caller
        arrival_time: Expected time the aircraft arrives, for forecasts
        home_airport: Home base, used when the location is local to it
    """

    label: str
    location: NavPoint
    forced_code: Optional[str] = None
    arrival_time: Optional[datetime] = None
    home_airport: Optional[Airport] = None


class QualificationStage(ABC):
    """
    Base interface for a qualification stage.

    Example:
        class LightingStage(QualificationStage):
            name = "lighting"

            def check(self, candidate, end):
                if all(not r.lighted for r in candidate.qualifying_runways):
                    return StageResult.soft(self.name, [Violation("lighting", "No lit runway", False)])
                return StageResult.passed(self.name)
    """

    name: str = ""

    def __init__(self, config: OperatingConfig):
        self.config = config

    async def prepare(self, candidates: List[AirportCandidate], end: TripEnd) -> None:
        """Fetch whatever the stage needs for every candidate at once."""
        return None

    @abstractmethod
    def check(self, candidate: AirportCandidate, end: TripEnd) -> StageResult:
        pass

    def rank(self, candidates: List[AirportCandidate]) -> List[AirportCandidate]:
        """Reorder the surviving pool; unchanged by default."""
        return candidates


class RunwayStage(QualificationStage):
    """Hard: at least one runway with an acceptable surface, length and width."""

    name = "runway"

    def check(self, candidate: AirportCandidate, end: TripEnd) -> StageResult:
        config = self.config
        qualifying = [r for r in candidate.airport.runways if not self._runway_violations(r)]
        if qualifying:
            candidate.qualifying_runways = qualifying
            candidate.best_runway = max(qualifying, key=lambda r: (r.length_ft, r.width_ft or 0))
            return StageResult.passed(self.name)

        runways = [r for r in candidate.airport.runways if not r.closed]
        if not runways:
            return StageResult.hard(self.name, Violation(
                'runway', "No runway data available", True, None, config.min_runway_length_ft,
            ))
        longest = max(runways, key=lambda r: r.length_ft or 0)
        return StageResult.hard(self.name, *self._runway_violations(longest))

    def _runway_violations(self, runway: Runway) -> List[Violation]:
        config = self.config
        violations = []
        if runway.closed:
            violations.append(Violation('runway_closed', f"Runway {runway.name} closed", True))
        if runway.length_ft is None or runway.length_ft < config.min_runway_length_ft:
            violations.append(Violation(
                'runway_length',
                f"Longest runway {runway.length_ft}ft < {config.min_runway_length_ft:.0f}ft required",
                True, runway.length_ft, config.min_runway_length_ft,
            ))
        if runway.width_ft is None or runway.width_ft < config.min_runway_width_ft:
            violations.append(Violation(
                'runway_width',
                f"Runway width {runway.width_ft}ft < {config.min_runway_width_ft:.0f}ft required",
                True, runway.width_ft, config.min_runway_width_ft,
            ))
        if not is_acceptable_surface(runway.surface, config.acceptable_surfaces, config.requires_paved_surface):
            violations.append(Violation(
                'runway_surface', f"Surface {runway.surface} not acceptable",
                True, runway.surface, list(config.acceptable_surfaces),
            ))
        return violations


class GroundTransportStage(QualificationStage):
    """Hard: the drive to the trip-end location fits the ground-time budget."""

    name = "ground_transport"

    def __init__(self, config: OperatingConfig, router: GroundRouter):
        super().__init__(config)
        self.router = router

    async def prepare(self, candidates: List[AirportCandidate], end: TripEnd) -> None:
        routes = await asyncio.gather(*(
            self.router.estimate(c.airport.navpoint, end.location, end.arrival_time)
            for c in candidates
        ))
        for candidate, route in zip(candidates, routes):
            candidate.ground_route = route

    def check(self, candidate: AirportCandidate, end: TripEnd) -> StageResult:
        minutes = candidate.ground_minutes
        if minutes > self.config.max_ground_time_min:
            return StageResult.hard(self.name, Violation(
                'ground_time',
                f"Ground transport {minutes:.0f} min exceeds {self.config.max_ground_time_min:.0f} min budget",
                True, minutes, self.config.max_ground_time_min,
            ))
        return StageResult.passed(self.name)

    def rank(self, candidates: List[AirportCandidate]) -> List[AirportCandidate]:
        return sorted(candidates, key=lambda c: (c.ground_minutes, c.distance_nm))


class FuelStage(QualificationStage):
    """Hard: the required fuel is not known to be missing."""

    name = "fuel"

    def check(self, candidate: AirportCandidate, end: TripEnd) -> StageResult:
        fuel = self.config.required_fuel
        try:
            available = candidate.airport.has_fuel(fuel)
        except ValueError as e:
            raise ConfigurationMissing(str(e), details={'required_fuel': fuel})
        if available is False:
            return StageResult.hard(self.name, Violation(
                'fuel', f"No {fuel} available", True, False, fuel,
            ))
        if available is None:
            logger.debug(f"{candidate.ident}: {fuel} availability unknown")
        return StageResult.passed(self.name)


class WeatherStage(QualificationStage):
    """
    Soft: forecast conditions at the expected arrival time.

    Checks ceiling, visibility, wind (gust if reported), crosswind on the best
    qualifying runway and, in IFR or LIFR, the availability of an instrument
    approach. A candidate without any weather passes.
    """

    name = "weather"

    def __init__(self, config: OperatingConfig, weather: WeatherAcquisition):
        super().__init__(config)
        self.weather = weather

    async def prepare(self, candidates: List[AirportCandidate], end: TripEnd) -> None:
        reports = await asyncio.gather(*(self.weather.fetch_forecast(c.ident) for c in candidates))
        for candidate, report in zip(candidates, reports):
            if report is not None and report.is_forecast and end.arrival_time is not None:
                report = WeatherAnalyzer.forecast_at(report, end.arrival_time)
            candidate.weather = report

    def check(self, candidate: AirportCandidate, end: TripEnd) -> StageResult:
        report = candidate.weather
        if report is None:
            logger.info(f"{candidate.ident}: no weather available, skipping weather checks")
            return StageResult.passed(self.name)

        config = self.config
        violations = []
        if report.ceiling_ft is not None and report.ceiling_ft < config.minimum_ceiling_ft:
            violations.append(Violation(
                'ceiling', f"Ceiling {report.ceiling_ft}ft below minimum {config.minimum_ceiling_ft:.0f}ft",
                False, report.ceiling_ft, config.minimum_ceiling_ft,
            ))
        if report.visibility_sm is not None and report.visibility_sm < config.minimum_visibility_sm:
            violations.append(Violation(
                'visibility', f"Visibility {report.visibility_sm}SM below minimum {config.minimum_visibility_sm}SM",
                False, report.visibility_sm, config.minimum_visibility_sm,
            ))

        wind = report.effective_wind_kt
        if wind > config.max_wind_kt:
            violations.append(Violation(
                'wind', f"Wind {wind}kt exceeds {config.max_wind_kt:.0f}kt limit",
                False, wind, config.max_wind_kt,
            ))

        runways = candidate.qualifying_runways or list(candidate.airport.runways)
        crosswind = WeatherAnalyzer.best_runway_crosswind(report, runways)
        if crosswind is not None and crosswind > config.max_crosswind_kt:
            violations.append(Violation(
                'crosswind', f"Crosswind {crosswind:.0f}kt exceeds {config.max_crosswind_kt:.0f}kt limit",
                False, round(crosswind, 1), config.max_crosswind_kt,
            ))

        category = report.flight_category
        if (config.ifr_requires_instrument_approach and category is not None and category.is_instrument
                and candidate.airport.has_instrument_approach is not True):
            violations.append(Violation(
                'instrument_approach', f"{category.value} conditions but no instrument approach known",
                False, category.value, True,
            ))

        return StageResult.soft(self.name, violations)


def select_candidate(candidates: List[AirportCandidate]) -> Optional[AirportCandidate]:
    """
    Pick the airport for a trip end from an evaluated pool.

    The first candidate without violations wins, in the order given (ground
    time order after the pipeline). Otherwise the candidate with the fewest
    soft violations is chosen, ties broken by ground time, and flagged as
    requiring approval. Candidates with hard violations are never chosen.
    """
    viable = [c for c in candidates if c.passed]
    if not viable:
        return None
    for candidate in viable:
        if not candidate.soft_violations:
            candidate.requires_approval = False
            return candidate
    best = min(viable, key=lambda c: (len(c.soft_violations), c.ground_minutes))
    best.requires_approval = True
    return best


class QualificationPipeline:
    """
    Find and qualify the airport serving one trip end.

    Stages run left to right: runway, ground transport, fuel, weather.

    Example:
        pipeline = QualificationPipeline(config, airports, router, weather)
        candidate = await pipeline.select(TripEnd("pickup", NavPoint(40.7, -73.4)))
        print(candidate.ident, candidate.requires_approval)
    """

    def __init__(
        self,
        config: OperatingConfig,
        airports: AirportReference,
        ground_router: GroundRouter,
        weather: WeatherAcquisition,
        stages: Optional[List[QualificationStage]] = None,
    ):
        self.config = config
        self.airports = airports
        self.ground_router = ground_router
        self.weather = weather
        if stages is None:
            self.stages: List[QualificationStage] = [
                RunwayStage(config),
                GroundTransportStage(config, ground_router),
                FuelStage(config),
                WeatherStage(config, weather),
            ]
        else:
            self.stages = list(stages)
        self.last_evaluated: Dict[str, List[AirportCandidate]] = {}

    async def select(self, end: TripEnd) -> AirportCandidate:
        """
        Choose the airport for a trip end.

        Raises:
            NoViableAirport: if every candidate fails a hard stage
        """
        if end.forced_code:
            forced = await self.airports.get(end.forced_code)
            if forced is not None:
                logger.info(f"{end.label}: using requested airport {forced.ident}")
                return self._direct(forced, end)
            logger.warning(f"{end.label}: requested airport {end.forced_code} not found, searching instead")

        home = end.home_airport
        if home is not None and home.navpoint.distance_to(end.location) <= self.config.local_radius_nm:
            logger.info(f"{end.label}: location is local to home base {home.ident}")
            return self._direct(home, end)

        candidates = await self.find_candidates(end)
        evaluated = await self.evaluate(candidates, end)
        self.last_evaluated[end.label] = evaluated

        selected = select_candidate(evaluated)
        if selected is None:
            raise NoViableAirport(
                f"No airport qualifies for the {end.label} location",
                details={
                    'trip_end': end.label,
                    'location': end.location.to_dict(),
                    'rejected': [c.summary() for c in evaluated],
                },
            )
        logger.info(
            f"{end.label}: selected {selected.ident} "
            f"({selected.ground_minutes:.0f} min ground, approval={selected.requires_approval})"
        )
        return selected

    async def find_candidates(self, end: TripEnd) -> List[AirportCandidate]:
        """Closest airports around the location, with their reference data."""
        nearby = await self.airports.search(
            end.location.latitude,
            end.location.longitude,
            self.config.search_radius_nm,
            min_runway_length_ft=self.config.min_runway_length_ft,
            paved_only=self.config.requires_paved_surface,
        )
        nearby = nearby[:self.config.max_candidates]
        logger.info(f"{end.label}: {len(nearby)} airports within {self.config.search_radius_nm:.0f}nm")

        airports = await asyncio.gather(*(self.airports.get(n.ident) for n in nearby))
        candidates = []
        for hit, airport in zip(nearby, airports):
            if airport is None:
                logger.warning(f"{end.label}: no reference data for {hit.ident}")
                continue
            candidates.append(AirportCandidate(airport=airport, distance_nm=hit.distance_nm))
        return candidates

    async def evaluate(self, candidates: List[AirportCandidate], end: TripEnd) -> List[AirportCandidate]:
        """
        Run every stage over the pool.

        Returns every candidate, survivors first in final rank order
        followed by those rejected, each with its stage results.
        """
        pool = list(candidates)
        rejected: List[AirportCandidate] = []
        for stage in self.stages:
            if not pool:
                break
            await stage.prepare(pool, end)
            survivors = []
            for candidate in pool:
                result = stage.check(candidate, end)
                candidate.results.append(result)
                if result.outcome == StageOutcome.HARD_REJECT:
                    logger.info(f"{end.label}: {candidate.ident} rejected by {stage.name}: "
                                f"{'; '.join(v.message for v in result.violations)}")
                    rejected.append(candidate)
                else:
                    survivors.append(candidate)
            pool = stage.rank(survivors)
        return pool + rejected

    def _direct(self, airport: Airport, end: TripEnd) -> AirportCandidate:
        distance = airport.navpoint.distance_to(end.location)
        runways = [r for r in airport.runways if not r.closed]
        return AirportCandidate(
            airport=airport,
            distance_nm=distance,
            best_runway=max(runways, key=lambda r: r.length_ft or 0) if runways else None,
            qualifying_runways=runways,
            forced=True,
        )
