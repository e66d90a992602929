"""Weather analysis: flight categories, delays, wind components, forecast matching."""

import logging
from dataclasses import replace
from datetime import datetime
from math import radians, sin
from typing import Iterable, Optional, Tuple

from aerotrip.utils.wind import angle_difference, crosswind_component, headwind_component
from aerotrip.weather.models import (
    ForecastPeriod,
    WeatherReport,
    FlightCategory,
    WindComponents,
)

logger = logging.getLogger(__name__)

# Minutes of expected delay by flight category
CATEGORY_DELAY_MIN = {
    FlightCategory.LIFR: 45,
    FlightCategory.IFR: 25,
    FlightCategory.MVFR: 10,
    FlightCategory.VFR: 0,
}


class WeatherAnalyzer:
    """
    Aviation weather analysis functions.

    All methods are static: pure functions with no state.
    """

    @staticmethod
    def flight_category(report) -> Optional[FlightCategory]:
        """
        Determine flight category from ceiling and visibility.

        Uses FAA thresholds:
            LIFR:  visibility < 1 SM  or  ceiling < 500 ft
            IFR:   1 <= vis < 3 SM    or  500 <= ceiling < 1000 ft
            MVFR:  3 <= vis <= 5 SM   or  1000 <= ceiling < 3000 ft
            VFR:   visibility > 5 SM  and ceiling >= 3000 ft

        The worst condition (ceiling or visibility) determines the category.

        Args:
            report: WeatherReport or ForecastPeriod with visibility_sm and ceiling_ft

        Returns:
            FlightCategory or None if insufficient data
        """
        vis_sm = report.visibility_sm
        ceiling = report.ceiling_ft

        if report.cavok:
            return FlightCategory.VFR

        if vis_sm is None and ceiling is None:
            return None

        vis_cat = None
        if vis_sm is not None:
            if vis_sm < 1:
                vis_cat = FlightCategory.LIFR
            elif vis_sm < 3:
                vis_cat = FlightCategory.IFR
            elif vis_sm <= 5:
                vis_cat = FlightCategory.MVFR
            else:
                vis_cat = FlightCategory.VFR

        ceil_cat = None
        if ceiling is not None:
            if ceiling < 500:
                ceil_cat = FlightCategory.LIFR
            elif ceiling < 1000:
                ceil_cat = FlightCategory.IFR
            elif ceiling < 3000:
                ceil_cat = FlightCategory.MVFR
            else:
                ceil_cat = FlightCategory.VFR

        # Return the worst (lowest) category
        if vis_cat is not None and ceil_cat is not None:
            return min(vis_cat, ceil_cat)
        return vis_cat if vis_cat is not None else ceil_cat

    @staticmethod
    def delay_minutes(report: Optional[WeatherReport]) -> int:
        """
        Expected operational delay in minutes caused by the conditions.

        Sum of a category term, a sustained-wind term, a gust term and a
        single weather-phenomenon term (thunderstorm over snow/freezing over
        rain). A missing report contributes nothing.
        """
        if report is None:
            return 0

        delay = 0
        if report.flight_category is not None:
            delay += CATEGORY_DELAY_MIN[report.flight_category]

        wind = report.wind_speed or 0
        if wind > 25:
            delay += 15
        elif wind > 20:
            delay += 10

        if report.wind_gust is not None and report.wind_gust > 30:
            delay += 10

        delay += _condition_delay(report.weather_conditions)
        return delay

    @staticmethod
    def wind_components(
        report: WeatherReport,
        runway_heading: int,
        runway_ident: str = "",
    ) -> Optional[WindComponents]:
        """
        Wind components for one runway.

        ``max_crosswind`` is the worst crosswind the report allows: the gust
        if any, swept across a reported variable range. Wind with no
        direction counts as a full crosswind. Returns None when the report
        carries no wind.
        """
        if report.wind_speed is None:
            return None

        if report.wind_direction is None:
            crosswind = float(report.wind_speed)
            return WindComponents(
                runway_ident=runway_ident,
                runway_heading=runway_heading,
                headwind=0.0,
                crosswind=crosswind,
                max_crosswind=float(report.effective_wind_kt) if crosswind or report.wind_gust else 0.0,
            )

        headwind, crosswind = _signed_components(report.wind_direction, runway_heading, report.wind_speed)
        gust_hw = gust_xw = None
        speeds = [report.wind_speed]
        if report.wind_gust is not None:
            gust_hw, gust_xw = _signed_components(report.wind_direction, runway_heading, report.wind_gust)
            speeds.append(report.wind_gust)

        max_crosswind = max(abs(crosswind), abs(gust_xw or 0.0))
        if report.wind_variable_from is not None and report.wind_variable_to is not None:
            for speed in speeds:
                max_crosswind = max(max_crosswind, _variable_range_crosswind(
                    report.wind_variable_from, report.wind_variable_to, runway_heading, speed,
                ))

        return WindComponents(
            runway_ident=runway_ident,
            runway_heading=runway_heading,
            headwind=headwind,
            crosswind=crosswind,
            crosswind_direction="" if crosswind == 0 else ("right" if crosswind > 0 else "left"),
            gust_headwind=gust_hw,
            gust_crosswind=gust_xw,
            max_crosswind=max_crosswind,
        )

    @staticmethod
    def best_runway_crosswind(report: WeatherReport, runways: Iterable) -> Optional[float]:
        """
        Lowest worst-case crosswind across the given runways.

        Args:
            report: WeatherReport with wind data
            runways: Runway objects exposing ``heading`` and ``name``

        Returns:
            Crosswind in knots, or None if no runway has a usable heading
        """
        best = None
        for runway in runways:
            heading = runway.heading
            if heading is None:
                continue
            wc = WeatherAnalyzer.wind_components(report, heading, runway.name)
            if wc is None:
                continue
            value = wc.max_crosswind if wc.max_crosswind is not None else abs(wc.crosswind)
            if best is None or value < best:
                best = value
        return best

    @staticmethod
    def find_period(taf: WeatherReport, when: datetime) -> Optional[ForecastPeriod]:
        """
        Find the forecast period in force at ``when``.

        Later periods win where windows touch. When ``when`` is outside
        every window, the latest period is returned.

        Args:
            taf: TAF WeatherReport with resolved periods
            when: Time to check

        Returns:
            The applicable ForecastPeriod, or None if the forecast has none
        """
        if not taf.periods:
            return None
        for period in reversed(taf.periods):
            if period.contains(when):
                return period
        logger.debug("%s: %s outside forecast validity, using latest period", taf.icao, when.isoformat())
        return taf.periods[-1]

    @staticmethod
    def forecast_at(taf: WeatherReport, when: datetime) -> WeatherReport:
        """
        Snapshot of a forecast at a given time as a WeatherReport.

        Wind, visibility, ceiling, conditions and category come from the
        applicable period; identity and validity from the forecast.
        """
        period = WeatherAnalyzer.find_period(taf, when)
        if period is None:
            return taf
        return replace(
            taf,
            wind_direction=period.wind_direction,
            wind_speed=period.wind_speed,
            wind_gust=period.wind_gust,
            wind_variable_from=None,
            wind_variable_to=None,
            visibility_sm=period.visibility_sm,
            visibility_meters=int(period.visibility_sm * 1609.34) if period.visibility_sm is not None else None,
            ceiling_ft=period.ceiling_ft,
            cavok=period.cavok,
            clouds=[],
            weather_conditions=list(period.weather_conditions),
            flight_category=period.flight_category,
            periods=[],
        )


# --- Module-level helpers (pure functions) ---

def _condition_delay(conditions: Iterable[str]) -> int:
    """Delay for the single most severe phenomenon present."""
    codes = [c.upper() for c in conditions or []]
    if any('TS' in c for c in codes):
        return 30
    if any('SN' in c or 'FZ' in c for c in codes):
        return 20
    if any('RA' in c for c in codes):
        return 5
    return 0



def _signed_components(wind_dir: int, runway_heading: int, speed: float) -> Tuple[float, float]:
    """(headwind, crosswind) rounded to 0.1 kt; crosswind from the right is positive."""
    headwind = headwind_component(wind_dir, speed, runway_heading)
    crosswind = speed * sin(radians(angle_difference(wind_dir, runway_heading)))
    return round(headwind, 1), round(crosswind, 1)


def _variable_range_crosswind(var_from: int, var_to: int, runway_heading: int, speed: float) -> float:
    """Largest crosswind for any direction in the clockwise arc var_from..var_to."""
    arc = (var_to - var_from) % 360
    for perpendicular in (runway_heading + 90, runway_heading + 270):
        if (perpendicular - var_from) % 360 <= arc:
            return float(speed)
    return max(crosswind_component(d, speed, runway_heading) for d in (var_from, var_to))
