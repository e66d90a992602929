"""Aviation Weather (aviationweather.gov) API source for live METAR/TAF and winds aloft."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import requests

from aerotrip.weather.models import WeatherReport
from aerotrip.weather.parser import WeatherParser
from aerotrip.weather.winds_aloft import WindSample, WindsAloftParser

logger = logging.getLogger(__name__)


class AvWxSource:
    """
    Fetch live METAR, TAF and winds-aloft data from the aviationweather.gov API.

    Returns raw text format, parsed via WeatherParser into WeatherReport
    objects. Every method swallows HTTP failures after logging them and
    returns an empty result, so callers can fall back to other sources.

    Example:
        source = AvWxSource()
        metar = source.fetch_metar("KTEB")
        if metar:
            print(metar.icao, metar.flight_category)
    """

    BASE_URL = "https://aviationweather.gov/api/data"
    BATCH_SIZE = 400
    DEFAULT_TIMEOUT = 15
    USER_AGENT = "aerotrip/1.0 (trip planning tool)"
    SOURCE_NAME = "avwx"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        reference_time: Optional[datetime] = None,
    ):
        """
        Args:
            session: Optional requests.Session for dependency injection (testing).
            timeout: HTTP request timeout in seconds.
            reference_time: Anchor for day-of-month timestamps (current time if None).
        """
        self._session = session or requests.Session()
        self._timeout = timeout
        self._reference_time = reference_time
        self._session.headers.setdefault("User-Agent", self.USER_AGENT)

    def fetch_metar(self, icao: str) -> Optional[WeatherReport]:
        """Most recent METAR for one station, or None."""
        reports = self.fetch_metars([icao], hours=2)
        if not reports:
            return None
        return max(reports, key=lambda r: r.observation_time.timestamp() if r.observation_time else 0)

    def fetch_taf(self, icao: str) -> Optional[WeatherReport]:
        """Current TAF for one station, or None."""
        reports = self.fetch_tafs([icao])
        return reports[0] if reports else None

    def fetch_metars(self, icaos: List[str], hours: float = 3) -> List[WeatherReport]:
        """
        Fetch METARs for a list of airports.

        Args:
            icaos: List of ICAO airport codes.
            hours: Number of hours of history to fetch (default 3).

        Returns:
            List of parsed WeatherReport objects (METARs/SPECIs).
        """
        reports = []
        for batch in self._batches(icaos):
            raw = self._fetch_raw("metar", {
                "ids": ",".join(batch),
                "format": "raw",
                "hours": str(hours),
            })
            for line in raw.splitlines():
                line = line.strip()
                if not line:
                    continue
                report = WeatherParser.parse_metar(line, source=self.SOURCE_NAME, reference_time=self._reference_time)
                if report:
                    reports.append(report)
        return reports

    def fetch_tafs(self, icaos: List[str]) -> List[WeatherReport]:
        """
        Fetch TAFs for a list of airports.

        Args:
            icaos: List of ICAO airport codes.

        Returns:
            List of parsed WeatherReport objects (TAFs).
        """
        reports = []
        for batch in self._batches(icaos):
            raw = self._fetch_raw("taf", {
                "ids": ",".join(batch),
                "format": "raw",
            })
            for block in self._split_taf_blocks(raw):
                block = block.strip()
                if not block:
                    continue
                report = WeatherParser.parse_taf(block, source=self.SOURCE_NAME, reference_time=self._reference_time)
                if report:
                    reports.append(report)
        return reports

    def fetch_winds_aloft(self, forecast_hours: int = 6, level: str = "low") -> Dict[str, Dict[int, WindSample]]:
        """
        Fetch the FB winds/temperatures aloft bulletin.

        Args:
            forecast_hours: Forecast period, 6, 12 or 24
            level: "low" (3000 to 39000 ft) or "high"

        Returns:
            Mapping station -> altitude -> WindSample, empty on failure.
        """
        raw = self._fetch_raw("windtemp", {
            "region": "all",
            "level": level,
            "fcst": f"{forecast_hours:02d}",
        })
        return WindsAloftParser.parse(raw)

    def _fetch_raw(self, endpoint: str, params: dict) -> str:
        """
        Make HTTP GET request and return raw text.

        Handles 204 (no data) by returning empty string.
        """
        url = f"{self.BASE_URL}/{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            if response.status_code == 204:
                return ""
            response.raise_for_status()
            return response.text
        except Exception as e:
            logger.warning("AvWx fetch failed for %s: %s", endpoint, e)
            return ""

    def _batches(self, icaos: List[str]):
        """Yield batches of ICAOs respecting the API batch size limit."""
        cleaned = [icao.strip().upper() for icao in icaos if icao.strip()]
        for i in range(0, len(cleaned), self.BATCH_SIZE):
            yield cleaned[i:i + self.BATCH_SIZE]

    @staticmethod
    def _split_taf_blocks(raw_text: str) -> List[str]:
        """
        Split multi-TAF raw text into individual TAF blocks.

        The API returns TAFs separated by blank lines or TAF headers.
        Each TAF may span multiple lines (continuation lines).
        """
        if not raw_text or not raw_text.strip():
            return []

        blocks = []
        current = []

        for line in raw_text.splitlines():
            stripped = line.strip()
            if not stripped:
                if current:
                    blocks.append("\n".join(current))
                    current = []
                continue

            if stripped.startswith("TAF") and current:
                blocks.append("\n".join(current))
                current = [stripped]
            else:
                current.append(stripped)

        if current:
            blocks.append("\n".join(current))

        return blocks
