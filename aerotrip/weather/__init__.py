"""
Weather module for parsing and analyzing METAR/TAF reports and winds aloft.

Provides:
- WeatherReport: Parsed METAR or TAF data, with resolved forecast periods
- ForecastPeriod: One FROM period of a TAF
- FlightCategory: VFR/MVFR/IFR/LIFR enum with ordering
- WeatherParser: Parse raw METAR/TAF text
- WeatherAnalyzer: Flight categories, delays, wind components, TAF matching
- WindsAloftParser: Decode FB winds/temps aloft bulletins

Example:
    from aerotrip.weather import WeatherParser, WeatherAnalyzer

    report = WeatherParser.parse_metar("METAR KFRG 211253Z 27012G22KT 10SM BKN025 18/09 A3001")
    print(report.flight_category)  # FlightCategory.MVFR
    print(WeatherAnalyzer.delay_minutes(report))  # 10
"""

from aerotrip.weather.models import (
    AirportWeather,
    FlightCategory,
    ForecastPeriod,
    WeatherReport,
    WeatherType,
    WindComponents,
)
from aerotrip.weather.parser import WeatherParser
from aerotrip.weather.analysis import WeatherAnalyzer
from aerotrip.weather.winds_aloft import WindSample, WindsAloftParser

__all__ = [
    'AirportWeather',
    'FlightCategory',
    'ForecastPeriod',
    'WeatherReport',
    'WeatherType',
    'WindComponents',
    'WeatherParser',
    'WeatherAnalyzer',
    'WindSample',
    'WindsAloftParser',
]
