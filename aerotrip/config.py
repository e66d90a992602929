"""
Operating configuration for a single aircraft performance profile.

The configuration is immutable once built and is passed explicitly to every
component that needs it. Values default to the operator defaults except for
the keys listed in ``REQUIRED_KEYS`` which must be supplied.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from aerotrip.exceptions import ConfigurationMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AltitudeRules:
    """Cruise altitude ceilings by leg distance band."""

    under_100nm_max_ft: int = 10000
    from_100_to_350nm_max_ft: int = 24000
    over_350nm_max_ft: int = 45000

    def cruise_altitude(self, distance_nm: float) -> int:
        """Return the cruise altitude for a leg of the given length."""
        if distance_nm < 100:
            return self.under_100nm_max_ft
        if distance_nm < 350:
            return self.from_100_to_350nm_max_ft
        return self.over_350nm_max_ft

    @classmethod
    def from_dict(cls, data: dict) -> 'AltitudeRules':
        """
        Build from either the flat form or the operator's nested form::

            {"under_100nm": {"max_altitude_ft": 10000}, ...}
        """
        def pick(flat_key: str, nested_key: str, default: int) -> int:
            if flat_key in data:
                return int(data[flat_key])
            nested = data.get(nested_key)
            if isinstance(nested, dict) and 'max_altitude_ft' in nested:
                return int(nested['max_altitude_ft'])
            return default

        return cls(
            under_100nm_max_ft=pick('under_100nm_max_ft', 'under_100nm', cls.under_100nm_max_ft),
            from_100_to_350nm_max_ft=pick('from_100_to_350nm_max_ft', '100_to_350nm', cls.from_100_to_350nm_max_ft),
            over_350nm_max_ft=pick('over_350nm_max_ft', 'over_350nm', cls.over_350nm_max_ft),
        )

    def to_dict(self) -> dict:
        return {
            'under_100nm_max_ft': self.under_100nm_max_ft,
            'from_100_to_350nm_max_ft': self.from_100_to_350nm_max_ft,
            'over_350nm_max_ft': self.over_350nm_max_ft,
        }


@dataclass(frozen=True)
class OperatingConfig:
    """
    Aircraft performance profile and operating limits.

    Attributes:
        home_base: Airport code the aircraft departs from
        cruise_speed_ktas: Cruise true airspeed
        climb_rate_fpm / descent_rate_fpm: Vertical rates for phase timing
        climb_tas_kt / descent_tas_kt: True airspeed during climb and descent
        min_ground_speed_kt: Floor applied to every phase ground speed
        route_overage_factor: Multiplier from great-circle to flown distance
        long_leg_threshold_nm / long_leg_headwind_factor: Extra conservatism
            applied to long legs flown into a net headwind
        taxi_time_per_airport_min: Taxi allowance, counted at both ends
        altitude_rules: Cruise altitude ceilings by distance band
        min_runway_length_ft / min_runway_width_ft: Hard runway limits
        requires_paved_surface / acceptable_surfaces: Surface rule
        required_fuel: Fuel type that must be available (``jet_a`` or ``avgas``)
        max_ground_time_min: Ground-transport budget per trip end
        search_radius_nm / max_candidates: Candidate search bounds
        local_radius_nm: Locations this close to the home base use it directly
        minimum_ceiling_ft / minimum_visibility_sm: Soft weather limits
        max_wind_kt / max_crosswind_kt: Wind limits
        ifr_requires_instrument_approach: Require an approach in IFR/LIFR
        fetch_timeout_s: Timeout applied to each external lookup
    """

    home_base: str
    cruise_speed_ktas: float
    climb_rate_fpm: float
    descent_rate_fpm: float
    altitude_rules: AltitudeRules
    min_runway_length_ft: float
    min_runway_width_ft: float
    max_wind_kt: float
    max_crosswind_kt: float

    climb_tas_kt: float = 320.0
    descent_tas_kt: float = 370.0
    min_ground_speed_kt: float = 50.0
    route_overage_factor: float = 1.05
    long_leg_threshold_nm: float = 500.0
    long_leg_headwind_factor: float = 1.0
    taxi_time_per_airport_min: float = 5.0

    requires_paved_surface: bool = True
    acceptable_surfaces: Tuple[str, ...] = ('ASPH', 'CONC')
    required_fuel: Optional[str] = 'jet_a'

    max_ground_time_min: float = 60.0
    search_radius_nm: float = 50.0
    max_candidates: int = 10
    local_radius_nm: float = 50.0

    minimum_ceiling_ft: float = 500.0
    minimum_visibility_sm: float = 1.0
    ifr_requires_instrument_approach: bool = True

    fetch_timeout_s: float = 12.0

    REQUIRED_KEYS = (
        'home_base',
        'cruise_speed_ktas',
        'climb_rate_fpm',
        'descent_rate_fpm',
        'altitude_rules',
        'min_runway_length_ft',
        'min_runway_width_ft',
        'max_wind_kt',
        'max_crosswind_kt',
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperatingConfig':
        """
        Build a configuration, checking required keys.

        Unknown keys are ignored. Numeric values given as strings are
        converted.

        Raises:
            ConfigurationMissing: if a required key is absent or unusable
        """
        missing = [key for key in cls.REQUIRED_KEYS if data.get(key) in (None, '')]
        if missing:
            raise ConfigurationMissing(
                f"Missing required operating parameters: {', '.join(missing)}",
                details={'missing': missing},
            )

        known_fields = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known_fields or value is None:
                continue
            values[key] = value

        values['home_base'] = str(values['home_base']).strip().upper()

        rules = values['altitude_rules']
        if isinstance(rules, dict):
            values['altitude_rules'] = AltitudeRules.from_dict(rules)
        elif not isinstance(rules, AltitudeRules):
            raise ConfigurationMissing(
                "altitude_rules must be a mapping",
                details={'altitude_rules': repr(rules)},
            )

        if 'acceptable_surfaces' in values:
            values['acceptable_surfaces'] = tuple(s.upper() for s in values['acceptable_surfaces'])

        for name, value in list(values.items()):
            kind = known_fields[name].type
            if kind is float or kind is int:
                values[name] = cls._number(name, value, kind)
            elif kind is bool:
                values[name] = bool(value)

        config = cls(**values)
        for name in ('cruise_speed_ktas', 'climb_rate_fpm', 'descent_rate_fpm'):
            if getattr(config, name) <= 0:
                raise ConfigurationMissing(
                    f"{name} must be positive",
                    details={name: getattr(config, name)},
                )
        return config

    @staticmethod
    def _number(name: str, value: Any, kind: type) -> Union[int, float]:
        try:
            return kind(float(value))
        except (TypeError, ValueError):
            raise ConfigurationMissing(
                f"{name} must be numeric",
                details={name: value},
            )

    def to_dict(self) -> dict:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, AltitudeRules):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            result[f.name] = value
        return result


def load_config(path: Union[str, Path]) -> OperatingConfig:
    """
    Load an operating configuration from a JSON file.

    Raises:
        ConfigurationMissing: if the file is missing or lacks required keys
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationMissing(f"Configuration file not found: {path}", details={'path': str(path)})
    with open(path) as f:
        data = json.load(f)
    logger.info(f"Loaded operating configuration from {path}")
    return OperatingConfig.from_dict(data)
