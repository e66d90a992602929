from aerotrip.sources.acquisition import WeatherAcquisition
from aerotrip.sources.advisory import AdvisoryVerdict, NullAdvisory, ScenarioAdvisory
from aerotrip.sources.airnav import AirNavFacilities, FacilityEnrichedReference
from aerotrip.sources.avwx import AvWxSource
from aerotrip.sources.base import AirportReference, GroundRoute, GroundRouter, NearbyAirport
from aerotrip.sources.checkwx import CheckWxSource
from aerotrip.sources.ground_route import HeuristicGroundRouter, OsrmGroundRouter
from aerotrip.sources.ourairports import OurAirportsReference

__all__ = [
    'WeatherAcquisition',
    'AdvisoryVerdict',
    'NullAdvisory',
    'ScenarioAdvisory',
    'AirNavFacilities',
    'FacilityEnrichedReference',
    'AvWxSource',
    'AirportReference',
    'GroundRoute',
    'GroundRouter',
    'NearbyAirport',
    'CheckWxSource',
    'HeuristicGroundRouter',
    'OsrmGroundRouter',
    'OurAirportsReference',
]
