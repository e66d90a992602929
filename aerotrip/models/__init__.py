from aerotrip.models.airport import Airport
from aerotrip.models.navpoint import NavPoint
from aerotrip.models.runway import Runway
from aerotrip.models.segment import SegmentType, TripSegment

__all__ = ['Airport', 'NavPoint', 'Runway', 'SegmentType', 'TripSegment']
