"""
Trip planning and airport qualification for aircraft transport missions.

A trip flies from a home base to an airport near a pickup location, drives
to the pickup and back, flies to an airport near the delivery location and
drives to the delivery. The package selects both airports against runway,
ground-time, fuel and weather constraints, times every leg and derives
conservative/expected/optimistic bounds.

The main public API includes:
- TripPlanner / TripRequest / TripPlan: Planning entry point and result
- OperatingConfig: Aircraft performance profile and operating limits
- WeatherParser / WeatherAnalyzer: METAR/TAF parsing and analysis
- NavPoint: Coordinates with great-circle calculations
"""

__version__ = '0.1.0'

from aerotrip.config import AltitudeRules, OperatingConfig, load_config
from aerotrip.exceptions import (
    BlockingWeatherViolation,
    ConfigurationMissing,
    NoViableAirport,
    PlanningError,
)
from aerotrip.models.navpoint import NavPoint
from aerotrip.planning.assembler import TripPlan, TripPlanner, TripRequest
from aerotrip.weather.analysis import WeatherAnalyzer
from aerotrip.weather.parser import WeatherParser

__all__ = [
    'AltitudeRules',
    'OperatingConfig',
    'load_config',
    'PlanningError',
    'BlockingWeatherViolation',
    'NoViableAirport',
    'ConfigurationMissing',
    'NavPoint',
    'TripPlanner',
    'TripRequest',
    'TripPlan',
    'WeatherAnalyzer',
    'WeatherParser',
]
