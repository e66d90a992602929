"""Weather acquisition with source fallback, for use from asyncio code."""

import asyncio
import logging
from typing import Dict, Optional, Tuple

from aerotrip.sources.avwx import AvWxSource
from aerotrip.sources.checkwx import CheckWxSource
from aerotrip.utils.concurrency import call_blocking
from aerotrip.weather.models import AirportWeather, WeatherReport

logger = logging.getLogger(__name__)

DEGRADED_FORECAST_TAG = "degraded-forecast"


class WeatherAcquisition:
    """
    Fetch current conditions and forecasts for airports.

    The primary source is aviationweather.gov. The secondary source
    (CheckWX) is tried when the primary has nothing. When no forecast can
    be found but current conditions exist, those are returned in place of
    the forecast and tagged as degraded. Lookups never raise: failures and
    timeouts give None.

    Example:
        weather = WeatherAcquisition(AvWxSource(), CheckWxSource())
        metar = await weather.fetch("KTEB")
    """

    DEFAULT_TIMEOUT = 12.0

    def __init__(
        self,
        primary: Optional[AvWxSource] = None,
        secondary: Optional[CheckWxSource] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.primary = primary or AvWxSource()
        self.secondary = secondary
        self.timeout = timeout

    async def fetch(self, code: str) -> Optional[WeatherReport]:
        """Current-conditions report for an airport, or None."""
        code = code.strip().upper()
        report = await call_blocking(
            self.primary.fetch_metar, code,
            timeout=self.timeout, label=f"avwx metar {code}",
        )
        if report is None and self.secondary is not None:
            report = await call_blocking(
                self.secondary.fetch_metar, code,
                timeout=self.timeout, label=f"checkwx metar {code}",
            )
        if report is None:
            logger.warning("No current conditions available for %s", code)
        return report

    async def fetch_forecast(self, code: str) -> Optional[WeatherReport]:
        """
        Forecast for an airport, or None.

        Falls back to current conditions tagged ``degraded-forecast``.
        """
        code = code.strip().upper()
        report = await self._forecast_only(code)
        if report is not None:
            return report
        current = await self.fetch(code)
        return self._degrade(code, current)

    async def fetch_airport_weather(self, code: str) -> AirportWeather:
        """Current conditions and forecast, fetched concurrently."""
        code = code.strip().upper()
        metar, taf = await asyncio.gather(self.fetch(code), self._forecast_only(code))
        if taf is None:
            taf = self._degrade(code, metar)
        return AirportWeather(icao=code, metar=metar, taf=taf)

    async def _forecast_only(self, code: str) -> Optional[WeatherReport]:
        report = await call_blocking(
            self.primary.fetch_taf, code,
            timeout=self.timeout, label=f"avwx taf {code}",
        )
        if report is None and self.secondary is not None:
            report = await call_blocking(
                self.secondary.fetch_taf, code,
                timeout=self.timeout, label=f"checkwx taf {code}",
            )
        return report

    @staticmethod
    def _degrade(code: str, current: Optional[WeatherReport]) -> Optional[WeatherReport]:
        if current is None:
            logger.warning("No forecast or current conditions for %s", code)
            return None
        logger.info("No forecast for %s, using current conditions", code)
        tag = f"{current.source}:{DEGRADED_FORECAST_TAG}" if current.source else DEGRADED_FORECAST_TAG
        return current.with_source(tag)


class RequestWeatherCache(WeatherAcquisition):
    """
    Acquisition that fetches each report at most once.

    Meant to live for a single planning request, so airports shared between
    the qualification stages and the flight legs are only fetched once.
    Concurrent callers for the same airport share one pending fetch.
    """

    def __init__(self, acquisition: WeatherAcquisition):
        super().__init__(acquisition.primary, acquisition.secondary, acquisition.timeout)
        self._pending: Dict[Tuple[str, str], asyncio.Future] = {}

    async def fetch(self, code: str) -> Optional[WeatherReport]:
        return await self._once('current', code, super().fetch)

    async def _forecast_only(self, code: str) -> Optional[WeatherReport]:
        return await self._once('forecast', code, super()._forecast_only)

    async def _once(self, kind: str, code: str, loader) -> Optional[WeatherReport]:
        key = (kind, code.strip().upper())
        if key not in self._pending:
            self._pending[key] = asyncio.ensure_future(loader(key[1]))
        return await self._pending[key]
