import logging
from typing import Optional

from aerotrip.config import OperatingConfig
from aerotrip.exceptions import BlockingWeatherViolation
from aerotrip.models.airport import Airport
from aerotrip.sources.acquisition import WeatherAcquisition
from aerotrip.weather.analysis import WeatherAnalyzer
from aerotrip.weather.models import WeatherReport

logger = logging.getLogger(__name__)


class DepartureWindCheck:
    """
    Pre-flight wind check at the home base.

    Runs before any airport search. The current wind (gust when reported)
    must not exceed ``max_wind_kt`` and the crosswind on the best runway must
    not exceed ``max_crosswind_kt``. With no current report the trip
    proceeds.
    """

    def __init__(self, config: OperatingConfig, weather: WeatherAcquisition):
        self.config = config
        self.weather = weather

    async def run(self, home: Airport) -> Optional[WeatherReport]:
        """
        Check the home base.

        Returns:
            The current report used, or None when none was available

        Raises:
            BlockingWeatherViolation: if a wind limit is exceeded
        """
        report = await self.weather.fetch(home.ident)
        if report is None:
            logger.warning(f"No current conditions at {home.ident}, proceeding without departure check")
            return None
        self.check(home, report)
        return report

    def check(self, home: Airport, report: WeatherReport) -> None:
        config = self.config
        wind = report.effective_wind_kt
        if wind > config.max_wind_kt:
            raise BlockingWeatherViolation(
                f"Departure wind at {home.ident} {wind}kt exceeds {config.max_wind_kt:.0f}kt limit",
                details=self._details(report, limit=config.max_wind_kt),
            )

        crosswind = WeatherAnalyzer.best_runway_crosswind(report, [r for r in home.runways if not r.closed])
        if crosswind is not None and crosswind > config.max_crosswind_kt:
            raise BlockingWeatherViolation(
                f"Departure crosswind at {home.ident} {crosswind:.0f}kt exceeds {config.max_crosswind_kt:.0f}kt limit",
                details=self._details(report, limit=config.max_crosswind_kt, crosswind=round(crosswind, 1)),
            )
        logger.info(f"Departure wind at {home.ident} within limits ({wind}kt)")

    @staticmethod
    def _details(report: WeatherReport, **extra) -> dict:
        details = {
            'icao': report.icao,
            'raw_text': report.raw_text,
            'wind_direction': report.wind_direction,
            'wind_speed': report.wind_speed,
            'wind_gust': report.wind_gust,
            'observation_time': report.observation_time.isoformat() if report.observation_time else None,
        }
        details.update(extra)
        return details
