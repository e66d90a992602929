from aerotrip.planning.assembler import ApprovalBlock, TripPlan, TripPlanner, TripRequest
from aerotrip.planning.departure_check import DepartureWindCheck
from aerotrip.planning.flight_time import FlightTimeModel, FlightTimeResult, compute_flight_time
from aerotrip.planning.qualification import (
    AirportCandidate,
    QualificationPipeline,
    StageOutcome,
    StageResult,
    TripEnd,
    Violation,
    select_candidate,
)
from aerotrip.planning.scenarios import ScenarioGenerator, ScenarioResult
from aerotrip.planning.wind_profile import WindProfileEstimator

__all__ = [
    'ApprovalBlock',
    'TripPlan',
    'TripPlanner',
    'TripRequest',
    'DepartureWindCheck',
    'FlightTimeModel',
    'FlightTimeResult',
    'compute_flight_time',
    'AirportCandidate',
    'QualificationPipeline',
    'StageOutcome',
    'StageResult',
    'TripEnd',
    'Violation',
    'select_candidate',
    'ScenarioGenerator',
    'ScenarioResult',
    'WindProfileEstimator',
]
