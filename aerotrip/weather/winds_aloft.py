"""
Winds and temperatures aloft (FB bulletin) decoding.

FB bulletins are fixed-column text tables::

    FT  3000    6000    9000   12000   18000   24000  30000  34000  39000
    ABI      2011+15 2119+09 2227+04 2234-10 2244-22 235237 235446 235055

Each column is ``DDSS[+TT]``: direction in tens of degrees, speed in knots
and temperature. ``9900`` is light and variable. Speeds of 100 kt or more
are coded by adding 50 to the direction. Above 24000 ft temperatures are
always negative and carry no sign.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from aerotrip.models.navpoint import NavPoint
from aerotrip.utils.wind import interpolate_direction

logger = logging.getLogger(__name__)

STANDARD_LEVELS_FT = (3000, 6000, 9000, 12000, 18000, 24000, 30000, 34000, 39000)

_LEVEL_TOKEN = re.compile(r'\d{4,5}')
_FIELD = re.compile(r'^(\d{2})(\d{2})([+-]?\d{2})?$')


@dataclass(frozen=True)
class WindSample:
    """
    Wind at one altitude.

    ``direction`` is None for light and variable wind.
    """

    altitude_ft: int
    direction: Optional[float]
    speed: float
    temperature_c: Optional[int] = None
    source: str = ""

    @property
    def variable(self) -> bool:
        return self.direction is None

    def to_dict(self) -> dict:
        return {
            'altitude_ft': self.altitude_ft,
            'direction': self.direction,
            'speed': self.speed,
            'temperature_c': self.temperature_c,
            'source': self.source,
        }


# FB reporting stations used as reference points
REFERENCE_STATIONS: Dict[str, NavPoint] = {
    code: NavPoint(lat, lon, name=code)
    for code, lat, lon in [
        ('ABI', 32.41, -99.68),
        ('ABQ', 35.04, -106.61),
        ('ALB', 42.75, -73.80),
        ('ATL', 33.64, -84.43),
        ('BDL', 41.94, -72.68),
        ('BNA', 36.12, -86.68),
        ('BOS', 42.36, -71.01),
        ('BUF', 42.94, -78.73),
        ('CHS', 32.90, -80.04),
        ('CLE', 41.41, -81.85),
        ('CVG', 39.05, -84.67),
        ('DCA', 38.85, -77.04),
        ('DEN', 39.86, -104.67),
        ('DFW', 32.90, -97.04),
        ('DSM', 41.53, -93.66),
        ('ELP', 31.81, -106.38),
        ('EMI', 39.50, -76.98),
        ('GSO', 36.10, -79.94),
        ('HOU', 29.65, -95.28),
        ('JAX', 30.49, -81.69),
        ('JFK', 40.64, -73.78),
        ('LAS', 36.08, -115.15),
        ('LAX', 33.94, -118.41),
        ('MEM', 35.04, -89.98),
        ('MIA', 25.79, -80.29),
        ('MKC', 39.12, -94.59),
        ('MSP', 44.88, -93.22),
        ('MSY', 29.99, -90.26),
        ('OKC', 35.39, -97.60),
        ('ORD', 41.98, -87.90),
        ('PHX', 33.43, -112.01),
        ('PIT', 40.49, -80.23),
        ('PWM', 43.65, -70.31),
        ('RDU', 35.88, -78.79),
        ('SAT', 29.53, -98.47),
        ('SEA', 47.45, -122.31),
        ('SFO', 37.62, -122.37),
        ('SLC', 40.79, -111.98),
        ('STL', 38.75, -90.37),
        ('SYR', 43.11, -76.11),
        ('TPA', 27.98, -82.53),
    ]
}


class WindsAloftParser:
    """Decode FB bulletins into per-station, per-level WindSamples."""

    @classmethod
    def parse(cls, text: str) -> Dict[str, Dict[int, WindSample]]:
        """
        Parse an FB bulletin.

        Args:
            text: Raw bulletin text, possibly with headers

        Returns:
            Mapping station -> altitude -> WindSample. Stations and levels
            that cannot be decoded are omitted.
        """
        result: Dict[str, Dict[int, WindSample]] = {}
        columns = None

        for line in (text or "").splitlines():
            if line.startswith("FT"):
                columns = cls._columns(line)
                continue
            if not columns or len(line.strip()) < 4:
                continue

            station = line[:3].strip()
            if not station.isalnum() or not station.isupper():
                continue

            levels: Dict[int, WindSample] = {}
            start = 4
            for altitude, end in columns:
                field = line[start:end + 1].strip()
                start = end + 1
                if not field:
                    continue
                sample = cls.decode(field, altitude, source=f"station:{station}")
                if sample is not None:
                    levels[altitude] = sample
            if levels:
                result[station] = levels

        if not result:
            logger.debug("No stations decoded from winds aloft bulletin")
        return result

    @staticmethod
    def _columns(header: str) -> List[tuple]:
        """(altitude, end column index) for each level in the header."""
        columns = []
        for match in _LEVEL_TOKEN.finditer(header):
            columns.append((int(match.group(0)), match.end() - 1))
        return columns

    @staticmethod
    def decode(field: str, altitude: int, source: str = "") -> Optional[WindSample]:
        """
        Decode one ``DDSS[+TT]`` group.

        Returns:
            WindSample, or None if the group is malformed
        """
        match = _FIELD.match(field.strip())
        if not match:
            return None

        dd, ss, tt = match.groups()
        direction_code = int(dd)
        speed = int(ss)

        temperature = None
        if tt is not None:
            temperature = int(tt)
            if altitude > 24000 and not tt.startswith(('+', '-')):
                temperature = -temperature

        if direction_code == 99 and speed == 0:
            return WindSample(altitude, None, 0.0, temperature, source)

        if direction_code >= 51:
            direction_code -= 50
            speed += 100

        if direction_code > 36:
            return None

        direction = float((direction_code * 10) % 360)
        return WindSample(altitude, direction, float(speed), temperature, source)


def wind_at_altitude(levels: Dict[int, WindSample], altitude_ft: float) -> Optional[WindSample]:
    """
    Wind at an arbitrary altitude from a station's decoded levels.

    Interpolates linearly between the two bracketing levels, direction along
    the shorter arc. Below the lowest or above the highest level the nearest
    level is used. A light and variable bracket gives a light and variable
    result.
    """
    if not levels:
        return None

    altitudes = sorted(levels)
    if altitude_ft <= altitudes[0]:
        return _relabel(levels[altitudes[0]], altitude_ft)
    if altitude_ft >= altitudes[-1]:
        return _relabel(levels[altitudes[-1]], altitude_ft)

    for low, high in zip(altitudes, altitudes[1:]):
        if low <= altitude_ft <= high:
            lower = levels[low]
            upper = levels[high]
            fraction = (altitude_ft - low) / (high - low)
            if lower.variable or upper.variable:
                return WindSample(int(altitude_ft), None, 0.0, None, "interpolated")
            return WindSample(
                altitude_ft=int(altitude_ft),
                direction=interpolate_direction(lower.direction, upper.direction, fraction),
                speed=lower.speed + (upper.speed - lower.speed) * fraction,
                temperature_c=None,
                source="interpolated",
            )
    return None


def _relabel(sample: WindSample, altitude_ft: float) -> WindSample:
    return WindSample(int(altitude_ft), sample.direction, sample.speed, sample.temperature_c, sample.source)
