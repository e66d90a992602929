"""Weather report data models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class FlightCategory(Enum):
    """
    FAA flight category based on ceiling and visibility.

    Ordered from worst to best: LIFR < IFR < MVFR < VFR.

    Thresholds (ceiling OR visibility, whichever is worse):
        LIFR:  visibility < 1 SM  or  ceiling < 500 ft
        IFR:   1 <= vis < 3 SM    or  500 <= ceiling < 1000 ft
        MVFR:  3 <= vis <= 5 SM   or  1000 <= ceiling < 3000 ft
        VFR:   visibility > 5 SM  and ceiling >= 3000 ft
    """

    LIFR = "LIFR"
    IFR = "IFR"
    MVFR = "MVFR"
    VFR = "VFR"

    @property
    def order(self) -> int:
        """Numeric ordering from worst (0) to best (3)."""
        return _CATEGORY_ORDER[self]

    @property
    def is_instrument(self) -> bool:
        """True when the flight must be conducted under instrument rules."""
        return self.order <= _CATEGORY_ORDER[FlightCategory.IFR]

    def __lt__(self, other: 'FlightCategory') -> bool:
        if not isinstance(other, FlightCategory):
            return NotImplemented
        return self.order < other.order

    def __le__(self, other: 'FlightCategory') -> bool:
        if not isinstance(other, FlightCategory):
            return NotImplemented
        return self.order <= other.order

    def __gt__(self, other: 'FlightCategory') -> bool:
        if not isinstance(other, FlightCategory):
            return NotImplemented
        return self.order > other.order

    def __ge__(self, other: 'FlightCategory') -> bool:
        if not isinstance(other, FlightCategory):
            return NotImplemented
        return self.order >= other.order


_CATEGORY_ORDER = {
    FlightCategory.LIFR: 0,
    FlightCategory.IFR: 1,
    FlightCategory.MVFR: 2,
    FlightCategory.VFR: 3,
}


class WeatherType(Enum):
    """Type of weather report."""

    METAR = "METAR"
    SPECI = "SPECI"
    TAF = "TAF"


@dataclass
class WindComponents:
    """
    Wind components relative to a runway.

    Positive headwind means wind is coming from ahead (favorable).
    Positive crosswind means wind is from the right.
    """

    runway_ident: str
    runway_heading: int
    headwind: float
    crosswind: float
    crosswind_direction: str = ""  # "left" or "right"
    gust_headwind: Optional[float] = None
    gust_crosswind: Optional[float] = None
    max_crosswind: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'runway_ident': self.runway_ident,
            'runway_heading': self.runway_heading,
            'headwind': self.headwind,
            'crosswind': self.crosswind,
            'crosswind_direction': self.crosswind_direction,
            'gust_headwind': self.gust_headwind,
            'gust_crosswind': self.gust_crosswind,
            'max_crosswind': self.max_crosswind,
        }


@dataclass
class ForecastPeriod:
    """
    One FROM period of a forecast.

    Every field is fully resolved: values the FM group did not re-specify
    are inherited from the preceding period.
    """

    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    wind_direction: Optional[int] = None
    wind_speed: Optional[int] = None
    wind_gust: Optional[int] = None
    visibility_sm: Optional[float] = None
    ceiling_ft: Optional[int] = None
    cavok: bool = False
    weather_conditions: List[str] = field(default_factory=list)
    flight_category: Optional[FlightCategory] = None
    change_type: str = "BASE"  # "BASE" or "FM"

    def contains(self, when: datetime) -> bool:
        """True if ``when`` falls inside [valid_from, valid_to]."""
        if self.valid_from is None:
            return False
        if when < self.valid_from:
            return False
        return self.valid_to is None or when <= self.valid_to

    def to_dict(self) -> dict:
        return {
            'valid_from': self.valid_from.isoformat() if self.valid_from else None,
            'valid_to': self.valid_to.isoformat() if self.valid_to else None,
            'wind_direction': self.wind_direction,
            'wind_speed': self.wind_speed,
            'wind_gust': self.wind_gust,
            'visibility_sm': self.visibility_sm,
            'ceiling_ft': self.ceiling_ft,
            'cavok': self.cavok,
            'weather_conditions': self.weather_conditions,
            'flight_category': self.flight_category.value if self.flight_category else None,
            'change_type': self.change_type,
        }


@dataclass
class WeatherReport:
    """
    A decoded METAR, SPECI or TAF.

    Wind is in knots with ``wind_direction`` None when variable or calm.
    Visibility defaults to 10 SM when the report gives none. The ceiling is
    the lowest broken or overcast layer. For a TAF the top-level fields hold
    the base forecast and ``periods`` lists the resolved FM periods, base
    first. ``source`` names the provider, with a ``:degraded-forecast``
    suffix when current conditions stand in for a missing forecast.
    """

    icao: str = ""
    report_type: WeatherType = WeatherType.METAR
    raw_text: str = ""
    observation_time: Optional[datetime] = None

    wind_direction: Optional[int] = None
    wind_speed: Optional[int] = None
    wind_gust: Optional[int] = None
    wind_variable_from: Optional[int] = None
    wind_variable_to: Optional[int] = None

    visibility_sm: Optional[float] = None
    visibility_meters: Optional[int] = None
    ceiling_ft: Optional[int] = None
    cavok: bool = False
    clouds: List[Dict[str, Any]] = field(default_factory=list)
    weather_conditions: List[str] = field(default_factory=list)
    flight_category: Optional[FlightCategory] = None

    validity_start: Optional[datetime] = None
    validity_end: Optional[datetime] = None
    periods: List[ForecastPeriod] = field(default_factory=list)

    source: str = ""

    @property
    def is_forecast(self) -> bool:
        return self.report_type == WeatherType.TAF

    @property
    def wind_variable(self) -> bool:
        """True when wind blows with no prevailing direction."""
        return self.wind_direction is None and bool(self.wind_speed)

    @property
    def effective_wind_kt(self) -> int:
        """Gust if reported, otherwise sustained speed."""
        if self.wind_gust is not None:
            return self.wind_gust
        return self.wind_speed or 0

    def with_source(self, source: str) -> 'WeatherReport':
        return replace(self, source=source)

    def to_dict(self) -> dict:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            'icao': self.icao,
            'type': self.report_type.value,
            'raw': self.raw_text,
            'observed': iso(self.observation_time),
            'wind': {
                'direction': self.wind_direction,
                'speed': self.wind_speed,
                'gust': self.wind_gust,
                'variable': [self.wind_variable_from, self.wind_variable_to]
                if self.wind_variable_from is not None else None,
            },
            'visibility_sm': self.visibility_sm,
            'ceiling_ft': self.ceiling_ft,
            'cavok': self.cavok,
            'clouds': self.clouds,
            'conditions': self.weather_conditions,
            'category': self.flight_category.value if self.flight_category else None,
            'valid': [iso(self.validity_start), iso(self.validity_end)] if self.is_forecast else None,
            'periods': [p.to_dict() for p in self.periods],
            'source': self.source,
        }

    def __repr__(self) -> str:
        category = self.flight_category.value if self.flight_category else "?"
        return f"<WeatherReport {self.report_type.value} {self.icao} {category} via {self.source or 'unknown'}>"


@dataclass
class AirportWeather:
    """Current conditions and forecast for one airport."""

    icao: str
    metar: Optional[WeatherReport] = None
    taf: Optional[WeatherReport] = None

    @property
    def has_current(self) -> bool:
        return self.metar is not None

    def to_dict(self) -> dict:
        return {
            'icao': self.icao,
            'metar': self.metar.to_dict() if self.metar else None,
            'taf': self.taf.to_dict() if self.taf else None,
        }
