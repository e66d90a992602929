"""
Airport facility data from AirNav airport pages.

OurAirports has no fuel or approach information. AirNav publishes both on
its per-airport page: the "Fuel available" row of the services table and
the list of instrument approach procedure charts.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from aerotrip.models.airport import Airport
from aerotrip.sources.base import AirportReference, NearbyAirport
from aerotrip.sources.cached import CachedSource
from aerotrip.utils.concurrency import call_blocking

logger = logging.getLogger(__name__)

NOT_FOUND_MARKER = "not found in the database"

_JET_FUEL = re.compile(r'\bJET\s*-?\s*A', re.IGNORECASE)
_AVGAS = re.compile(r'\b100\s*LL\b', re.IGNORECASE)
# Chart titles: "ILS OR LOC RWY 14", "RNAV (GPS) RWY 32", "VOR-A"
_APPROACH_CHART = re.compile(
    r'^(?:ILS|LOC|LDA|SDF|RNAV|GPS|VOR|NDB|TACAN)\b.*(?:\bRWY\s*\d|-[A-Z]$)',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class FacilityInfo:
    """Fuel and approach facts read from one airport page."""

    ident: str
    jet_a: bool
    avgas: bool
    approaches: Tuple[str, ...] = ()

    @property
    def has_instrument_approach(self) -> bool:
        return bool(self.approaches)


def parse_facilities(ident: str, html: str) -> Optional[FacilityInfo]:
    """
    Read fuel and approach facts from an AirNav airport page.

    Returns None when the page reports an unknown airport. A known airport
    with no fuel row or no approach charts has the corresponding flags set
    to False.
    """
    if not html or NOT_FOUND_MARKER in html:
        return None

    soup = BeautifulSoup(html, 'html.parser')
    fuel = _row_value(soup, 'Fuel available') or ""

    approaches = []
    for link in soup.find_all('a'):
        title = link.get_text(' ', strip=True)
        if _APPROACH_CHART.match(title) and title not in approaches:
            approaches.append(title)

    return FacilityInfo(
        ident=ident,
        jet_a=bool(_JET_FUEL.search(fuel)),
        avgas=bool(_AVGAS.search(fuel)),
        approaches=tuple(approaches),
    )


def _row_value(soup: BeautifulSoup, label: str) -> Optional[str]:
    """Text of the cell following the first cell that starts with ``label``."""
    wanted = label.lower()
    for cell in soup.find_all(['td', 'th']):
        if cell.get_text(' ', strip=True).lower().startswith(wanted):
            value = cell.find_next_sibling('td')
            if value is not None:
                return value.get_text(' ', strip=True)
    return None


class AirNavFacilities(CachedSource):
    """
    Cached AirNav airport pages.

    Each page is stored as ``page_{IDENT}.html`` in the cache directory and
    refreshed after ``max_age_days``.
    """

    BASE_URL = "https://www.airnav.com/airport/"
    DEFAULT_TIMEOUT = 10
    USER_AGENT = "aerotrip/0.1"

    def __init__(self, cache_dir: str, session: Optional[requests.Session] = None, max_age_days: int = 7):
        super().__init__(cache_dir)
        self._session = session or requests.Session()
        self._max_age_days = max_age_days

    def fetch_page(self, ident: str) -> str:
        url = f"{self.BASE_URL}{ident}"
        logger.info(f"Downloading {url}")
        response = self._session.get(url, timeout=self.DEFAULT_TIMEOUT, headers={'User-Agent': self.USER_AGENT})
        response.raise_for_status()
        return response.text

    def facilities(self, ident: str) -> Optional[FacilityInfo]:
        ident = ident.strip().upper()
        html = self.get_data('page', 'html', ident, max_age_days=self._max_age_days)
        info = parse_facilities(ident, html)
        if info is None:
            logger.debug(f"{ident} not found on AirNav")
        return info


class FacilityEnrichedReference(AirportReference):
    """
    Airport reference that fills unknown fuel and approach flags.

    Airports come from the wrapped reference. Flags it leaves as None are
    taken from the facility source; a failed or timed-out facility lookup
    leaves them unknown.
    """

    DEFAULT_TIMEOUT = 15.0

    def __init__(
        self,
        reference: AirportReference,
        facilities: AirNavFacilities,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.reference = reference
        self.facilities = facilities
        self._timeout = timeout

    async def get(self, code: str) -> Optional[Airport]:
        airport = await self.reference.get(code)
        if airport is None:
            return None
        info = await call_blocking(
            self.facilities.facilities, airport.ident,
            timeout=self._timeout, label=f"facility lookup {airport.ident}",
        )
        if info is None:
            return airport
        return apply_facilities(airport, info)

    async def search(
        self,
        latitude: float,
        longitude: float,
        radius_nm: float,
        min_runway_length_ft: Optional[float] = None,
        paved_only: bool = False,
    ) -> List[NearbyAirport]:
        return await self.reference.search(latitude, longitude, radius_nm, min_runway_length_ft, paved_only)


def apply_facilities(airport: Airport, info: FacilityInfo) -> Airport:
    """Copy of ``airport`` with its unknown flags filled from ``info``."""
    return replace(
        airport,
        jet_a=info.jet_a if airport.jet_a is None else airport.jet_a,
        avgas=info.avgas if airport.avgas is None else airport.avgas,
        has_instrument_approach=(
            info.has_instrument_approach
            if airport.has_instrument_approach is None
            else airport.has_instrument_approach
        ),
    )
