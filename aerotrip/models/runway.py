import re
from dataclasses import dataclass
from typing import Optional

from aerotrip.utils.runway_classifier import classify_runway_surface

_IDENT_NUMBER = re.compile(r'^(\d{1,2})')


@dataclass(frozen=True)
class Runway:
    """Data class for storing runway information."""

    airport_ident: str
    length_ft: Optional[float] = None
    width_ft: Optional[float] = None
    surface: Optional[str] = None
    lighted: Optional[bool] = None
    closed: Optional[bool] = None

    # Low end (LE) information
    le_ident: Optional[str] = None
    le_heading_degT: Optional[float] = None

    # High end (HE) information
    he_ident: Optional[str] = None
    he_heading_degT: Optional[float] = None

    @property
    def name(self) -> str:
        """Runway designator such as ``04/22``."""
        ends = [e for e in (self.le_ident, self.he_ident) if e]
        return "/".join(ends)

    @property
    def surface_family(self) -> Optional[str]:
        return classify_runway_surface(self.surface)

    @property
    def heading(self) -> Optional[int]:
        """
        True heading of the low end.

        Falls back to the runway number times ten when the reference data
        carries no heading.
        """
        if self.le_heading_degT is not None:
            return int(round(self.le_heading_degT)) % 360
        for ident in (self.le_ident, self.he_ident):
            heading = heading_from_ident(ident)
            if heading is not None:
                if ident == self.he_ident:
                    heading = (heading + 180) % 360
                return heading
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'airport_ident': self.airport_ident,
            'name': self.name,
            'length_ft': self.length_ft,
            'width_ft': self.width_ft,
            'surface': self.surface,
            'lighted': self.lighted,
            'closed': self.closed,
            'le_ident': self.le_ident,
            'le_heading_degT': self.le_heading_degT,
            'he_ident': self.he_ident,
            'he_heading_degT': self.he_heading_degT,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Runway':
        """Create instance from dictionary."""
        known_fields = {field for field in cls.__dataclass_fields__}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}

        # Convert numeric fields from strings if needed
        for field, value in filtered_data.items():
            if value is not None and any(field.endswith(suffix) for suffix in ['_degT', '_ft']):
                try:
                    filtered_data[field] = float(value)
                except (ValueError, TypeError):
                    filtered_data[field] = None

        for field in ['lighted', 'closed']:
            if field in filtered_data and filtered_data[field] is not None:
                filtered_data[field] = bool(int(filtered_data[field]))

        for field in ['le_ident', 'he_ident', 'surface']:
            if field in filtered_data and filtered_data[field] is not None:
                filtered_data[field] = str(filtered_data[field])

        return cls(**filtered_data)

    def __str__(self):
        runway_info = f"Runway {self.name}"
        if self.length_ft:
            runway_info += f" {self.length_ft:.0f}ft"
        if self.width_ft:
            runway_info += f"x{self.width_ft:.0f}ft"
        if self.surface:
            runway_info += f" {self.surface}"
        return runway_info


def heading_from_ident(ident: Optional[str]) -> Optional[int]:
    """Magnetic heading implied by a runway ident (``27L`` -> 270)."""
    if not ident:
        return None
    match = _IDENT_NUMBER.match(ident.strip())
    if not match:
        return None
    number = int(match.group(1))
    if not 1 <= number <= 36:
        return None
    return (number * 10) % 360
