"""Wind vector helpers shared by the flight-time and qualification code."""

from math import atan2, cos, degrees, radians, sin, sqrt
from typing import Iterable, Optional, Tuple


def angle_difference(a: float, b: float) -> float:
    """Signed difference ``a - b`` normalized to [-180, 180)."""
    return (a - b + 180.0) % 360.0 - 180.0


def headwind_component(
    wind_direction: Optional[float],
    wind_speed: Optional[float],
    course: float,
) -> float:
    """
    Headwind component for a given course.

    Positive is a headwind, negative a tailwind. Variable (no direction) or
    calm wind contributes nothing.

    Args:
        wind_direction: Direction the wind blows FROM, degrees true
        wind_speed: Wind speed in knots
        course: Aircraft true course in degrees
    """
    if wind_direction is None or not wind_speed:
        return 0.0
    return wind_speed * cos(radians(angle_difference(wind_direction, course)))


def crosswind_component(
    wind_direction: Optional[float],
    wind_speed: Optional[float],
    heading: float,
) -> float:
    """
    Absolute crosswind component for a runway heading.

    Variable wind is treated as a full crosswind.
    """
    if not wind_speed:
        return 0.0
    if wind_direction is None:
        return float(wind_speed)
    return abs(wind_speed * sin(radians(angle_difference(wind_direction, heading))))


def interpolate_direction(d1: float, d2: float, fraction: float) -> float:
    """Interpolate between two directions along the shorter arc."""
    diff = angle_difference(d2, d1)
    return (d1 + diff * fraction) % 360.0


def to_vector(direction: float, speed: float) -> Tuple[float, float]:
    """Convert a FROM direction and speed to (east, north) components."""
    rad = radians(direction)
    return speed * sin(rad), speed * cos(rad)


def from_vector(east: float, north: float) -> Tuple[float, float]:
    """Convert (east, north) components back to (direction, speed)."""
    speed = sqrt(east * east + north * north)
    if speed < 1e-9:
        return 0.0, 0.0
    return degrees(atan2(east, north)) % 360.0, speed


def average_wind(samples: Iterable[Tuple[Optional[float], float, float]]) -> Tuple[Optional[float], float]:
    """
    Weighted vector average of wind samples.

    Args:
        samples: (direction or None for variable, speed, weight) triples.
            Variable samples count as calm.

    Returns:
        (direction or None, speed); direction is None when the result is calm
        or there was nothing to average.
    """
    east = north = total = 0.0
    for direction, speed, weight in samples:
        if weight <= 0:
            continue
        total += weight
        if direction is None or not speed:
            continue
        e, n = to_vector(direction, speed)
        east += e * weight
        north += n * weight
    if total <= 0:
        return None, 0.0
    direction, speed = from_vector(east / total, north / total)
    if speed < 1e-9:
        return None, 0.0
    return direction, speed
