"""CheckWX API source, used as the secondary weather provider."""

import logging
import os
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import requests

from aerotrip.weather.models import WeatherReport
from aerotrip.weather.parser import WeatherParser

logger = logging.getLogger(__name__)


class CheckWxSource:
    """
    Fetch METAR and TAF text from api.checkwx.com.

    Lookups try the station itself first, then the closest reporting
    station within the search radius. Reports further than
    ``MAX_DISTANCE_NM`` are never used. Without an API key every lookup
    returns None.

    Example:
        source = CheckWxSource(api_key="...")
        taf = source.fetch_taf("KFRG")
    """

    BASE_URL = "https://api.checkwx.com"
    DEFAULT_TIMEOUT = 10
    SEARCH_RADIUS_NM = 100
    MAX_DISTANCE_NM = 200
    SOURCE_NAME = "checkwx"

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        reference_time: Optional[datetime] = None,
    ):
        """
        Args:
            api_key: CheckWX key; read from CHECKWX_API_KEY when omitted.
            session: Optional requests.Session for dependency injection (testing).
            timeout: HTTP request timeout in seconds.
            reference_time: Anchor for day-of-month timestamps.
        """
        self._api_key = api_key if api_key is not None else os.environ.get("CHECKWX_API_KEY")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._reference_time = reference_time

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def fetch_metar(self, icao: str) -> Optional[WeatherReport]:
        """Current conditions at or near a station."""
        return self._lookup("metar", icao, WeatherParser.parse_metar)

    def fetch_taf(self, icao: str) -> Optional[WeatherReport]:
        """Forecast at or near a station."""
        return self._lookup("taf", icao, WeatherParser.parse_taf)

    def _lookup(
        self,
        kind: str,
        icao: str,
        parse: Callable[..., Optional[WeatherReport]],
    ) -> Optional[WeatherReport]:
        if not self.enabled:
            logger.debug("CHECKWX_API_KEY not configured, skipping CheckWX %s for %s", kind, icao)
            return None

        icao = icao.strip().upper()
        items = self._fetch_json(f"{kind}/{icao}/decoded")
        if items:
            report = self._parse_item(items[0], parse, self.SOURCE_NAME)
            if report:
                return report

        items = self._fetch_json(f"{kind}/{icao}/radius/{self.SEARCH_RADIUS_NM}/decoded")
        closest = self._closest(items)
        if closest is None:
            logger.info("CheckWX: no %s within %snm of %s", kind, self.MAX_DISTANCE_NM, icao)
            return None

        item, distance = closest
        station = item.get('icao', '')
        logger.info("CheckWX: using %s %s from %s (%.0fnm)", icao, kind, station, distance)
        return self._parse_item(item, parse, f"{self.SOURCE_NAME}:{station}@{distance:.0f}nm")

    def _parse_item(
        self,
        item: dict,
        parse: Callable[..., Optional[WeatherReport]],
        source: str,
    ) -> Optional[WeatherReport]:
        raw = item.get('raw_text')
        if not raw:
            return None
        return parse(raw, source=source, reference_time=self._reference_time)

    def _closest(self, items: List[dict]) -> Optional[Tuple[dict, float]]:
        """Closest item strictly inside the distance cap."""
        best = None
        for item in items:
            distance = (item.get('distance') or {}).get('nautical')
            if distance is None:
                continue
            distance = float(distance)
            if distance >= self.MAX_DISTANCE_NM:
                continue
            if best is None or distance < best[1]:
                best = (item, distance)
        return best

    def _fetch_json(self, path: str) -> List[dict]:
        """GET an endpoint and return its ``data`` list, empty on any failure."""
        url = f"{self.BASE_URL}/{path}"
        try:
            response = self._session.get(url, headers={"X-API-Key": self._api_key}, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except Exception as e:
            logger.warning("CheckWX fetch failed for %s: %s", path, e)
            return []
        if not payload or not payload.get('results'):
            return []
        return list(payload.get('data') or [])
