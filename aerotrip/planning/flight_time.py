"""
Flight-phase time model.

A flight leg is split into climb, cruise and descent. Each phase has its own
true airspeed and headwind, sampled from winds aloft at the altitudes the
aircraft actually flies during that phase. Weather delays at both ends, taxi
time and a conservatism factor for long legs flown into a headwind are added
on top.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from aerotrip.config import OperatingConfig
from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint
from aerotrip.planning.wind_profile import SYNTHETIC_SOURCE, WindProfileEstimator
from aerotrip.utils.wind import headwind_component
from aerotrip.weather.analysis import WeatherAnalyzer
from aerotrip.weather.models import AirportWeather
from aerotrip.weather.winds_aloft import STANDARD_LEVELS_FT, WindSample

logger = logging.getLogger(__name__)

# Weight of the forecast delay at arrival relative to observed conditions
ARRIVAL_FORECAST_WEIGHT = 0.7


@dataclass
class FlightTimeBreakdown:
    """Per-phase detail of a flight-time estimate."""

    climb_minutes: float = 0.0
    cruise_minutes: float = 0.0
    descent_minutes: float = 0.0
    taxi_minutes: float = 0.0
    climb_distance_nm: float = 0.0
    cruise_distance_nm: float = 0.0
    descent_distance_nm: float = 0.0
    climb_headwind: float = 0.0
    descent_headwind: float = 0.0
    cruise_ground_speed: float = 0.0
    course: float = 0.0
    departure_delay_minutes: float = 0.0
    arrival_delay_minutes: float = 0.0
    used_arrival_forecast: bool = False
    long_leg_factor_applied: bool = False
    synthetic_wind: bool = False

    def to_dict(self) -> dict:
        return {
            'climb_minutes': round(self.climb_minutes, 1),
            'cruise_minutes': round(self.cruise_minutes, 1),
            'descent_minutes': round(self.descent_minutes, 1),
            'taxi_minutes': round(self.taxi_minutes, 1),
            'climb_distance_nm': round(self.climb_distance_nm, 1),
            'cruise_distance_nm': round(self.cruise_distance_nm, 1),
            'descent_distance_nm': round(self.descent_distance_nm, 1),
            'climb_headwind': round(self.climb_headwind, 1),
            'descent_headwind': round(self.descent_headwind, 1),
            'cruise_ground_speed': round(self.cruise_ground_speed, 1),
            'course': round(self.course, 1),
            'departure_delay_minutes': round(self.departure_delay_minutes, 1),
            'arrival_delay_minutes': round(self.arrival_delay_minutes, 1),
            'used_arrival_forecast': self.used_arrival_forecast,
            'long_leg_factor_applied': self.long_leg_factor_applied,
            'synthetic_wind': self.synthetic_wind,
        }


@dataclass
class FlightTimeResult:
    """Outcome of a flight-time estimate."""

    minutes: int = 0
    weather_delay_minutes: int = 0
    cruise_headwind: float = 0.0
    cruise_altitude_ft: int = 0
    distance_nm: float = 0.0
    breakdown: FlightTimeBreakdown = field(default_factory=FlightTimeBreakdown)

    def to_dict(self) -> dict:
        return {
            'minutes': self.minutes,
            'weather_delay_minutes': self.weather_delay_minutes,
            'cruise_headwind': round(self.cruise_headwind, 1),
            'cruise_altitude_ft': self.cruise_altitude_ft,
            'distance_nm': round(self.distance_nm, 1),
            'breakdown': self.breakdown.to_dict(),
        }


def phase_bands(cruise_altitude_ft: int) -> List[Tuple[int, float]]:
    """
    Altitudes sampled during climb or descent with their dwell weights.

    Every standard level below cruise plus cruise itself; each stands for the
    slab of altitude between it and the level below, so its weight is the
    slab thickness (dwell time at a constant vertical rate).
    """
    levels = [level for level in STANDARD_LEVELS_FT if level < cruise_altitude_ft]
    levels.append(cruise_altitude_ft)
    bands = []
    previous = 0
    for level in levels:
        bands.append((level, float(level - previous)))
        previous = level
    return bands


class FlightTimeModel:
    """
    Compute flight-leg durations for one operating configuration.

    Example:
        model = FlightTimeModel(config, WindProfileEstimator(AvWxSource()))
        result = await model.compute(212.0, dep_weather, arr_weather, kfrg, kpwm, True)
    """

    def __init__(self, config: OperatingConfig, wind_estimator: Optional[WindProfileEstimator] = None):
        self.config = config
        self.wind_estimator = wind_estimator or WindProfileEstimator()

    async def compute(
        self,
        distance_nm: float,
        departure_weather: Optional[AirportWeather],
        arrival_weather: Optional[AirportWeather],
        departure_airport: Airport,
        arrival_airport: Airport,
        use_arrival_forecast: bool,
        waypoints: Optional[Sequence[NavPoint]] = None,
        departure_time: Optional[datetime] = None,
    ) -> FlightTimeResult:
        """
        Estimate the block time of a flight leg.

        Args:
            distance_nm: Great-circle distance between the airports
            departure_weather: Weather at the departure airport
            arrival_weather: Weather at the arrival airport
            departure_airport / arrival_airport: Leg endpoints
            use_arrival_forecast: Use the forecast at arrival time, weighted,
                instead of the current conditions at the arrival airport
            waypoints: Route polyline (defaults to the direct route)
            departure_time: Take-off time, used for forecasts

        Returns:
            FlightTimeResult; all zeros for a zero-distance leg
        """
        if distance_nm <= 0:
            return FlightTimeResult()

        config = self.config
        cruise_alt = config.altitude_rules.cruise_altitude(distance_nm)
        route = list(waypoints) if waypoints else [departure_airport.navpoint, arrival_airport.navpoint]
        course = departure_airport.navpoint.course_to(arrival_airport.navpoint)

        climb_minutes = cruise_alt / config.climb_rate_fpm
        descent_minutes = cruise_alt / config.descent_rate_fpm
        # Wind sampling windows use still-air phase distances
        climb_window = config.climb_tas_kt * climb_minutes / 60
        descent_window = config.descent_tas_kt * descent_minutes / 60

        bands = phase_bands(cruise_alt)
        climb_samples, descent_samples, cruise_sample = await asyncio.gather(
            self._sample_bands(route, bands, distance_nm, 0.0, max(distance_nm - climb_window, 0.0), departure_time),
            self._sample_bands(route, bands, distance_nm, max(distance_nm - descent_window, 0.0), 0.0, departure_time),
            self.wind_estimator.average_wind(route, cruise_alt, distance_nm, climb_window, descent_window, departure_time),
        )

        climb_hw = _weighted_headwind(climb_samples, bands, course)
        descent_hw = _weighted_headwind(descent_samples, bands, course)
        cruise_hw = headwind_component(cruise_sample.direction, cruise_sample.speed, course)

        climb_gs = max(config.climb_tas_kt - climb_hw, config.min_ground_speed_kt)
        descent_gs = max(config.descent_tas_kt - descent_hw, config.min_ground_speed_kt)
        cruise_gs = max(config.cruise_speed_ktas - cruise_hw, config.min_ground_speed_kt)

        climb_nm = climb_minutes / 60 * climb_gs
        descent_nm = descent_minutes / 60 * descent_gs
        cruise_nm = max(distance_nm * config.route_overage_factor - climb_nm - descent_nm, 0.0)
        cruise_minutes = cruise_nm / cruise_gs * 60

        taxi_minutes = config.taxi_time_per_airport_min * 2
        airborne = climb_minutes + cruise_minutes + descent_minutes

        departure_delay = WeatherAnalyzer.delay_minutes(departure_weather.metar if departure_weather else None)
        arrival_delay, used_forecast = self._arrival_delay(
            arrival_weather, use_arrival_forecast, departure_time, airborne + config.taxi_time_per_airport_min,
        )
        weather_delay = departure_delay + arrival_delay

        total = round(airborne + weather_delay + taxi_minutes)

        long_leg_applied = False
        if (distance_nm > config.long_leg_threshold_nm and cruise_hw > 0
                and config.long_leg_headwind_factor != 1.0):
            total = round(total * config.long_leg_headwind_factor)
            long_leg_applied = True

        synthetic = any(s.source == SYNTHETIC_SOURCE for s in [cruise_sample, *climb_samples, *descent_samples])
        logger.info(
            "%s->%s %.0fnm FL%03d: climb %.1f cruise %.1f descent %.1f delay %.1f total %d min (hw %.0fkt)",
            departure_airport.ident, arrival_airport.ident, distance_nm, cruise_alt // 100,
            climb_minutes, cruise_minutes, descent_minutes, weather_delay, total, cruise_hw,
        )

        return FlightTimeResult(
            minutes=int(total),
            weather_delay_minutes=int(round(weather_delay)),
            cruise_headwind=cruise_hw,
            cruise_altitude_ft=cruise_alt,
            distance_nm=distance_nm,
            breakdown=FlightTimeBreakdown(
                climb_minutes=climb_minutes,
                cruise_minutes=cruise_minutes,
                descent_minutes=descent_minutes,
                taxi_minutes=taxi_minutes,
                climb_distance_nm=climb_nm,
                cruise_distance_nm=cruise_nm,
                descent_distance_nm=descent_nm,
                climb_headwind=climb_hw,
                descent_headwind=descent_hw,
                cruise_ground_speed=cruise_gs,
                course=course,
                departure_delay_minutes=departure_delay,
                arrival_delay_minutes=arrival_delay,
                used_arrival_forecast=used_forecast,
                long_leg_factor_applied=long_leg_applied,
                synthetic_wind=synthetic,
            ),
        )

    async def _sample_bands(
        self,
        route: List[NavPoint],
        bands: List[Tuple[int, float]],
        distance_nm: float,
        climb_buffer_nm: float,
        descent_buffer_nm: float,
        departure_time: Optional[datetime],
    ) -> List[WindSample]:
        return list(await asyncio.gather(*(
            self.wind_estimator.average_wind(route, altitude, distance_nm, climb_buffer_nm, descent_buffer_nm, departure_time)
            for altitude, _ in bands
        )))

    @staticmethod
    def _arrival_delay(
        arrival_weather: Optional[AirportWeather],
        use_forecast: bool,
        departure_time: Optional[datetime],
        minutes_to_arrival: float,
    ) -> Tuple[float, bool]:
        """(delay minutes, whether the forecast was used)."""
        if arrival_weather is None:
            return 0.0, False
        if use_forecast and arrival_weather.taf is not None:
            taf = arrival_weather.taf
            base_time = departure_time or taf.validity_start or taf.observation_time
            if base_time is not None:
                snapshot = WeatherAnalyzer.forecast_at(taf, base_time + timedelta(minutes=minutes_to_arrival))
            else:
                snapshot = taf
            return WeatherAnalyzer.delay_minutes(snapshot) * ARRIVAL_FORECAST_WEIGHT, True
        return float(WeatherAnalyzer.delay_minutes(arrival_weather.metar)), False


def _weighted_headwind(samples: List[WindSample], bands: List[Tuple[int, float]], course: float) -> float:
    total_weight = sum(weight for _, weight in bands)
    if total_weight <= 0:
        return 0.0
    return sum(
        headwind_component(sample.direction, sample.speed, course) * weight
        for sample, (_, weight) in zip(samples, bands)
    ) / total_weight


async def compute_flight_time(
    distance_nm: float,
    config: OperatingConfig,
    departure_weather: Optional[AirportWeather],
    arrival_weather: Optional[AirportWeather],
    departure_airport: Airport,
    arrival_airport: Airport,
    use_arrival_forecast: bool,
    waypoints: Optional[Sequence[NavPoint]] = None,
    departure_time: Optional[datetime] = None,
    wind_estimator: Optional[WindProfileEstimator] = None,
) -> FlightTimeResult:
    """Functional entry point; see FlightTimeModel.compute."""
    model = FlightTimeModel(config, wind_estimator)
    return await model.compute(
        distance_nm, departure_weather, arrival_weather, departure_airport, arrival_airport,
        use_arrival_forecast, waypoints, departure_time,
    )
