import asyncio
import logging
import threading
from io import StringIO
from typing import Any, List, Optional

import numpy as np
import pandas as pd
import requests

from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import EARTH_RADIUS_NM
from aerotrip.models.runway import Runway
from aerotrip.sources.base import AirportReference, NearbyAirport
from aerotrip.sources.cached import CachedSource
from aerotrip.utils.concurrency import call_blocking
from aerotrip.utils.runway_classifier import is_paved_surface

logger = logging.getLogger(__name__)


class OurAirportsReference(CachedSource, AirportReference):
    """
    Airport reference data from the OurAirports open data set.

    The airports and runways CSV files are downloaded once into the cache
    directory and loaded into pandas DataFrames. Lookups accept the ICAO
    ident as well as GPS or local codes (``FRG`` finds ``KFRG``).

    OurAirports carries no fuel or approach information, so those flags are
    left unknown; wrap the reference in ``FacilityEnrichedReference`` to fill
    them. The CSV files are loaded once, outside the per-lookup timeout.
    """

    AIRPORTS_URL = "https://davidmegginson.github.io/ourairports-data/airports.csv"
    RUNWAYS_URL = "https://davidmegginson.github.io/ourairports-data/runways.csv"
    AIRPORT_TYPES = ('large_airport', 'medium_airport', 'small_airport')
    DEFAULT_TIMEOUT = 60

    def __init__(
        self,
        cache_dir: str,
        session: Optional[requests.Session] = None,
        max_age_days: int = 30,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            cache_dir: Base directory for caching the CSV files
            session: Optional requests.Session for dependency injection (testing)
            max_age_days: Re-download the CSV files when older than this
            timeout: Timeout for the async lookups (None for no limit)
        """
        super().__init__(cache_dir)
        self._session = session or requests.Session()
        self._max_age_days = max_age_days
        self._timeout = timeout
        self._airports: Optional[pd.DataFrame] = None
        self._runways: Optional[pd.DataFrame] = None
        self._load_lock = threading.Lock()

    # --- CachedSource fetchers ---

    def fetch_airports(self) -> pd.DataFrame:
        return self._download_csv(self.AIRPORTS_URL)

    def fetch_runways(self) -> pd.DataFrame:
        return self._download_csv(self.RUNWAYS_URL)

    def _download_csv(self, url: str) -> pd.DataFrame:
        logger.info(f"Downloading {url}")
        response = self._session.get(url, timeout=self.DEFAULT_TIMEOUT)
        response.raise_for_status()
        return pd.read_csv(StringIO(response.text), keep_default_na=False, na_values=[''])

    # --- Data frames ---

    @property
    def loaded(self) -> bool:
        return self._airports is not None and self._runways is not None

    def load(self) -> None:
        """Download or read from cache both CSV files."""
        self.airports_frame()
        self.runways_frame()

    def airports_frame(self) -> pd.DataFrame:
        with self._load_lock:
            if self._airports is None:
                df = self.get_data('airports', 'csv', max_age_days=self._max_age_days)
                df = df[df['type'].isin(self.AIRPORT_TYPES)].copy()
                for column in ('gps_code', 'local_code', 'iata_code'):
                    if column not in df.columns:
                        df[column] = None
                self._airports = df.reset_index(drop=True)
        return self._airports

    def runways_frame(self) -> pd.DataFrame:
        with self._load_lock:
            if self._runways is None:
                df = self.get_data('runways', 'csv', max_age_days=self._max_age_days)
                if 'closed' in df.columns:
                    df = df[df['closed'].fillna(0).astype(int) == 0]
                self._runways = df.reset_index(drop=True)
        return self._runways

    # --- Synchronous lookups ---

    def lookup(self, code: str) -> Optional[Airport]:
        """Find one airport by ident, GPS code or local code."""
        code = code.strip().upper()
        df = self.airports_frame()
        matches = df[df['ident'] == code]
        if matches.empty:
            matches = df[(df['gps_code'] == code) | (df['local_code'] == code) | (df['iata_code'] == code)]
        if matches.empty and len(code) == 3:
            matches = df[df['ident'] == f"K{code}"]
        if matches.empty:
            logger.debug(f"No airport found for {code}")
            return None
        return self._build_airport(matches.iloc[0])

    def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_nm: float,
        min_runway_length_ft: Optional[float] = None,
        paved_only: bool = False,
    ) -> List[NearbyAirport]:
        """Airports within ``radius_nm`` of a point, closest first."""
        df = self.airports_frame()
        distances = _haversine_nm(latitude, longitude, df['latitude_deg'].to_numpy(), df['longitude_deg'].to_numpy())
        nearby = df.assign(distance_nm=distances)
        nearby = nearby[nearby['distance_nm'] <= radius_nm]

        if min_runway_length_ft is not None or paved_only:
            runways = self.runways_frame()
            runways = runways[runways['airport_ident'].isin(nearby['ident'])]
            if paved_only:
                runways = runways[runways['surface'].map(lambda s: is_paved_surface(s) if isinstance(s, str) else False)]
            if min_runway_length_ft is not None:
                runways = runways[runways['length_ft'].fillna(0) >= min_runway_length_ft]
            nearby = nearby[nearby['ident'].isin(runways['airport_ident'])]

        nearby = nearby.sort_values(['distance_nm', 'ident'])
        return [
            NearbyAirport(ident=row['ident'], distance_nm=float(row['distance_nm']), name=self._safe_get(row, 'name'))
            for _, row in nearby.iterrows()
        ]

    # --- AirportReference ---

    async def _ensure_loaded(self) -> None:
        # Loading is not covered by the lookup timeout; a failure propagates.
        if not self.loaded:
            await asyncio.to_thread(self.load)

    async def get(self, code: str) -> Optional[Airport]:
        await self._ensure_loaded()
        return await call_blocking(self.lookup, code, timeout=self._timeout, label=f"airport lookup {code}")

    async def search(
        self,
        latitude: float,
        longitude: float,
        radius_nm: float,
        min_runway_length_ft: Optional[float] = None,
        paved_only: bool = False,
    ) -> List[NearbyAirport]:
        await self._ensure_loaded()
        result = await call_blocking(
            self.find_nearby, latitude, longitude, radius_nm, min_runway_length_ft, paved_only,
            timeout=self._timeout, default=[], label="airport search",
        )
        return result or []

    # --- Builders ---

    def _build_airport(self, row: pd.Series) -> Airport:
        ident = row['ident']
        runway_rows = self.runways_frame()
        runway_rows = runway_rows[runway_rows['airport_ident'] == ident]
        runways = tuple(
            Runway.from_dict({k: self._safe_get(r, k) for k in r.index})
            for _, r in runway_rows.iterrows()
        )
        elevation = self._safe_get(row, 'elevation_ft')
        return Airport(
            ident=ident,
            name=self._safe_get(row, 'name'),
            latitude_deg=float(row['latitude_deg']),
            longitude_deg=float(row['longitude_deg']),
            elevation_ft=float(elevation) if elevation is not None else None,
            runways=runways,
        )

    @staticmethod
    def _safe_get(row: pd.Series, key: str) -> Any:
        """Get a value from a pandas Series, converting nan to None."""
        value = row.get(key)
        if value is None or pd.isna(value):
            return None
        return value


def _haversine_nm(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Vectorised great-circle distance from one point to many."""
    lat1 = np.radians(lat)
    lat2 = np.radians(lats.astype(float))
    dlat = lat2 - lat1
    dlon = np.radians(lons.astype(float)) - np.radians(lon)
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_NM * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
