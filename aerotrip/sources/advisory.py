from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AdvisoryVerdict:
    """
    Opinion returned by a scenario advisory.

    Adjusted values are only used when ``is_realistic`` is False.
    """

    is_realistic: bool
    adjusted_conservative: Optional[int] = None
    adjusted_optimistic: Optional[int] = None
    reasoning: str = ""

    def to_dict(self) -> dict:
        return {
            'is_realistic': self.is_realistic,
            'adjusted_conservative': self.adjusted_conservative,
            'adjusted_optimistic': self.adjusted_optimistic,
            'reasoning': self.reasoning,
        }


class ScenarioAdvisory(ABC):
    """
    Optional reviewer of computed scenario bounds.

    Implementations may be slow or unreliable; callers treat any failure as
    "no opinion".
    """

    @abstractmethod
    async def validate(
        self,
        expected_minutes: int,
        conservative_minutes: int,
        optimistic_minutes: int,
        summary: Dict[str, Any],
    ) -> AdvisoryVerdict:
        pass


class NullAdvisory(ScenarioAdvisory):
    """Advisory that accepts every scenario."""

    async def validate(
        self,
        expected_minutes: int,
        conservative_minutes: int,
        optimistic_minutes: int,
        summary: Dict[str, Any],
    ) -> AdvisoryVerdict:
        return AdvisoryVerdict(is_realistic=True)
