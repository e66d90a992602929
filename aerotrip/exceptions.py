"""Errors raised while planning a trip."""

from typing import Any, Dict, Optional


class PlanningError(Exception):
    """Base class for failures that abort a planning request."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        """
        Args:
            reason: User-facing explanation
            details: Structured context for the caller (fields, codes)
        """
        super().__init__(reason)
        self.reason = reason
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            'error': self.__class__.__name__,
            'reason': self.reason,
            'details': self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.reason} ({self.details})"
        return self.reason


class BlockingWeatherViolation(PlanningError):
    """Departure conditions at the home base forbid launching the trip."""


class NoViableAirport(PlanningError):
    """No candidate airport survived the hard qualification stages."""


class ConfigurationMissing(PlanningError):
    """A required operating parameter is absent or unusable."""
