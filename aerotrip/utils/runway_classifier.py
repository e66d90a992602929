"""
Runway surface classification utilities.

Surface strings in reference data are free text (``ASPH``, ``Asphalt``,
``CON``, ``TURF-G`` ...). They are classified into the paved and unpaved
families, and normalized to a short code that can be compared against the
operator's list of acceptable surfaces.
"""

from typing import Iterable, Optional
import logging

logger = logging.getLogger(__name__)

# Surface classification patterns
SURFACE_PATTERNS = {
    'paved': {
        'exact': ['hard', 'paved', 'pem', 'asfalt', 'tarmac', 'asfalto', 'tar', 'bit'],
        'contains': ['asphalt', 'concrete', 'cement', 'bitumen'],
        'startswith': ['asp', 'con', 'apsh', 'bit', 'pav', 'tar', 'pem'],
    },
    'unpaved': {
        'exact': ['graas', 'soft'],
        'contains': ['turf', 'grass', 'dirt', 'gravel', 'soil', 'sand', 'earth', 'water', 'snow', 'ice'],
        'startswith': ['turf', 'grv', 'grav', 'grs', 'gra', 'gre', 'san', 'cla', 'dirt', 'wat', 'sno'],
    },
}

# Normalized codes for the paved family
_PAVED_CODES = {
    'asp': 'ASPH',
    'apsh': 'ASPH',
    'asfalt': 'ASPH',
    'asfalto': 'ASPH',
    'tarmac': 'ASPH',
    'tar': 'ASPH',
    'bit': 'ASPH',
    'con': 'CONC',
    'cement': 'CONC',
    'pem': 'PEM',
}


def classify_runway_surface(surface: Optional[str]) -> Optional[str]:
    """
    Classify a runway surface into the paved or unpaved family.

    Args:
        surface: Surface type string (e.g., 'ASPH', 'GRASS', 'CON')

    Returns:
        'paved', 'unpaved' or None if unknown
    """
    if not surface:
        return None

    surface_lower = surface.lower().strip()

    for category, patterns in SURFACE_PATTERNS.items():
        if surface_lower in patterns.get('exact', []):
            return category
        for pattern in patterns.get('contains', []):
            if pattern in surface_lower:
                return category
        for pattern in patterns.get('startswith', []):
            if surface_lower.startswith(pattern):
                return category

    logger.debug(f"Unknown runway surface type: '{surface}'")
    return None


def is_paved_surface(surface: Optional[str]) -> bool:
    """True if the surface is classified in the paved family."""
    return classify_runway_surface(surface) == 'paved'


def normalize_surface(surface: Optional[str]) -> Optional[str]:
    """
    Normalize a surface string to a short code.

    Paved surfaces map to ``ASPH``, ``CONC`` or ``PEM``; anything else is
    returned upper-cased and stripped.
    """
    if not surface:
        return None
    surface_lower = surface.lower().strip()
    if 'concrete' in surface_lower:
        return 'CONC'
    if 'asphalt' in surface_lower or 'bitumen' in surface_lower:
        return 'ASPH'
    for prefix, code in _PAVED_CODES.items():
        if surface_lower.startswith(prefix):
            return code
    return surface.strip().upper()


def is_acceptable_surface(
    surface: Optional[str],
    acceptable: Iterable[str],
    requires_paved: bool = True,
) -> bool:
    """
    Check a surface against the operator's surface rule.

    Args:
        surface: Raw surface string
        acceptable: Normalized codes accepted by the operator
        requires_paved: Reject anything not in the paved family

    Returns:
        True if the surface may be used
    """
    if requires_paved and not is_paved_surface(surface):
        return False
    accepted = {code.upper() for code in acceptable}
    if not accepted:
        return True
    code = normalize_surface(surface)
    if code in accepted:
        return True
    # Generic paved designations satisfy any paved-only list
    return code in ('PAVED', 'HARD', 'PEM') and requires_paved

