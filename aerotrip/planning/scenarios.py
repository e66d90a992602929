"""
Conservative, expected and optimistic trip durations.

Each segment widens the expected total by a multiplier pair chosen from its
kind and size: flights by distance, ground legs by duration. An optional
advisory may then review the bounds.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from aerotrip.models.segment import SegmentType, TripSegment
from aerotrip.sources.advisory import AdvisoryVerdict, NullAdvisory, ScenarioAdvisory

logger = logging.getLogger(__name__)

# (threshold, conservative, optimistic): the last threshold exceeded applies
FLIGHT_MULTIPLIERS: Tuple[Tuple[float, float, float], ...] = (
    (0, 1.15, 0.90),
    (50, 1.20, 0.88),
    (200, 1.25, 0.85),
)
GROUND_MULTIPLIERS: Tuple[Tuple[float, float, float], ...] = (
    (0, 1.30, 0.90),
    (20, 1.40, 0.88),
    (45, 1.50, 0.85),
)


@dataclass(frozen=True)
class ScenarioResult:
    conservative: int
    expected: int
    optimistic: int
    advisory: Optional[AdvisoryVerdict] = None

    def to_dict(self) -> dict:
        return {
            'conservative': self.conservative,
            'expected': self.expected,
            'optimistic': self.optimistic,
            'advisory': self.advisory.to_dict() if self.advisory else None,
        }


def multipliers_for(segment: TripSegment) -> Tuple[float, float]:
    """(conservative, optimistic) multiplier pair for a segment."""
    if segment.type == SegmentType.FLIGHT:
        table, size = FLIGHT_MULTIPLIERS, segment.distance
    else:
        table, size = GROUND_MULTIPLIERS, segment.duration_minutes
    conservative, optimistic = table[0][1], table[0][2]
    for threshold, cons, opt in table[1:]:
        if size > threshold:
            conservative, optimistic = cons, opt
    return conservative, optimistic


class ScenarioGenerator:
    """
    Derive duration bounds for an ordered segment list.

    Example:
        scenarios = await ScenarioGenerator().generate(segments, expected=185)
    """

    def __init__(self, advisory: Optional[ScenarioAdvisory] = None):
        self.advisory = advisory or NullAdvisory()

    def compute(self, segments: Sequence[TripSegment], expected: int) -> Tuple[int, int]:
        """Computed (conservative, optimistic) bounds before any advisory."""
        conservative = float(expected)
        optimistic = float(expected)
        for segment in segments:
            cons_mult, opt_mult = multipliers_for(segment)
            conservative += segment.duration_minutes * (cons_mult - 1)
            optimistic -= segment.duration_minutes * (1 - opt_mult)
        return int(round(conservative)), int(round(optimistic))

    async def generate(
        self,
        segments: Sequence[TripSegment],
        expected: int,
        weather_delay_minutes: float = 0.0,
        max_headwind: float = 0.0,
    ) -> ScenarioResult:
        conservative, optimistic = self.compute(segments, expected)
        logger.info(f"Computed scenarios: conservative {conservative}, expected {expected}, optimistic {optimistic}")

        summary = {
            'segments': [
                {'type': s.type.value, 'duration': s.duration_minutes, 'distance': s.distance}
                for s in segments
            ],
            'route_complexity': _route_complexity(segments),
            'weather_conditions': _weather_conditions(weather_delay_minutes, max_headwind),
        }

        verdict = None
        try:
            verdict = await self.advisory.validate(expected, conservative, optimistic, summary)
        except Exception as e:
            logger.warning(f"Scenario advisory failed, keeping computed bounds: {e}")

        if verdict is not None and not verdict.is_realistic:
            logger.info(f"Advisory adjusted scenarios: {verdict.reasoning}")
            if verdict.adjusted_conservative:
                conservative = int(round(verdict.adjusted_conservative))
            if verdict.adjusted_optimistic:
                optimistic = int(round(verdict.adjusted_optimistic))

        # Adjusted bounds may not cross the expected value
        conservative = max(conservative, expected)
        optimistic = min(optimistic, expected)
        return ScenarioResult(conservative, expected, optimistic, verdict)


def _route_complexity(segments: Sequence[TripSegment]) -> str:
    if len(segments) > 4:
        return 'complex'
    if len(segments) > 2:
        return 'moderate'
    return 'simple'


def _weather_conditions(weather_delay_minutes: float, max_headwind: float) -> str:
    if weather_delay_minutes > 10:
        return 'challenging'
    if max_headwind > 20:
        return 'windy'
    return 'typical'


def total_minutes(segments: List[TripSegment]) -> int:
    return sum(s.duration_minutes for s in segments)
