from dataclasses import dataclass
from typing import Optional, Tuple

from aerotrip.models.navpoint import NavPoint
from aerotrip.models.runway import Runway


@dataclass(frozen=True)
class Airport:
    """
    Airport reference data used for qualification.

    Fuel and approach flags are tri-state: ``None`` means the reference data
    does not say.
    """

    ident: str
    name: Optional[str] = None
    latitude_deg: float = 0.0
    longitude_deg: float = 0.0
    elevation_ft: Optional[float] = None
    runways: Tuple[Runway, ...] = ()
    jet_a: Optional[bool] = None
    avgas: Optional[bool] = None
    has_instrument_approach: Optional[bool] = None

    @property
    def navpoint(self) -> NavPoint:
        return NavPoint(self.latitude_deg, self.longitude_deg, name=self.ident)

    @property
    def longest_runway_length_ft(self) -> Optional[float]:
        lengths = [r.length_ft for r in self.runways if r.length_ft is not None]
        return max(lengths) if lengths else None

    def has_fuel(self, fuel: Optional[str]) -> Optional[bool]:
        """
        Whether the given fuel type is available.

        Returns None when unknown and True when no fuel is required.
        """
        if fuel is None:
            return True
        if fuel == 'jet_a':
            return self.jet_a
        if fuel == 'avgas':
            return self.avgas
        raise ValueError(f"Unknown fuel type: {fuel}")

    def to_dict(self) -> dict:
        return {
            'ident': self.ident,
            'name': self.name,
            'latitude_deg': self.latitude_deg,
            'longitude_deg': self.longitude_deg,
            'elevation_ft': self.elevation_ft,
            'runways': [r.to_dict() for r in self.runways],
            'jet_a': self.jet_a,
            'avgas': self.avgas,
            'has_instrument_approach': self.has_instrument_approach,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Airport':
        return cls(
            ident=data['ident'],
            name=data.get('name'),
            latitude_deg=float(data.get('latitude_deg', 0.0)),
            longitude_deg=float(data.get('longitude_deg', 0.0)),
            elevation_ft=data.get('elevation_ft'),
            runways=tuple(Runway.from_dict(r) for r in data.get('runways', [])),
            jet_a=data.get('jet_a'),
            avgas=data.get('avgas'),
            has_instrument_approach=data.get('has_instrument_approach'),
        )

    def __repr__(self) -> str:
        return f"Airport(ident='{self.ident}', runways={len(self.runways)})"
