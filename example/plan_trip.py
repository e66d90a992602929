#!/usr/bin/env python3

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from dateutil import parser as date_parser

from aerotrip import NavPoint, PlanningError, TripPlanner, TripRequest, load_config
from aerotrip.sources.acquisition import WeatherAcquisition
from aerotrip.sources.airnav import AirNavFacilities, FacilityEnrichedReference
from aerotrip.sources.avwx import AvWxSource
from aerotrip.sources.checkwx import CheckWxSource
from aerotrip.sources.ground_route import HeuristicGroundRouter, OsrmGroundRouter
from aerotrip.sources.ourairports import OurAirportsReference

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_location(value: str) -> NavPoint:
    """Parse ``lat,lon`` into a NavPoint."""
    try:
        lat, lon = (float(part) for part in value.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected 'lat,lon', got '{value}'")
    return NavPoint(lat, lon)


def parse_departure(value: str) -> datetime:
    when = date_parser.isoparse(value)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when


class TripPlanningTool:
    """Builds the planner from command line options and prints the plan."""

    def __init__(self, args):
        self.args = args
        self.config = load_config(args.config)

        self.airports = OurAirportsReference(args.cache_dir, timeout=self.config.fetch_timeout_s)
        if args.force_refresh:
            self.airports.set_force_refresh()
        if args.never_refresh:
            self.airports.set_never_refresh()

        airports = self.airports
        if not args.no_facilities:
            facilities = AirNavFacilities(args.cache_dir)
            facilities.set_force_refresh(args.force_refresh)
            facilities.set_never_refresh(args.never_refresh)
            airports = FacilityEnrichedReference(airports, facilities, timeout=self.config.fetch_timeout_s)

        if args.no_routing:
            router = HeuristicGroundRouter()
        else:
            router = OsrmGroundRouter(base_url=args.osrm_url)

        avwx = AvWxSource()
        checkwx = CheckWxSource()
        weather = WeatherAcquisition(
            avwx,
            checkwx if checkwx.enabled else None,
            timeout=self.config.fetch_timeout_s,
        )
        self.planner = TripPlanner(
            self.config,
            airports,
            router,
            weather,
            winds=None if args.synthetic_winds else avwx,
        )

    def run(self) -> int:
        request = TripRequest(
            pickup_location=self.args.pickup,
            delivery_location=self.args.delivery,
            departure_time=self.args.departure,
            pickup_airport=self.args.pickup_airport,
            destination_airport=self.args.destination_airport,
        )
        try:
            plan = asyncio.run(self.planner.plan(request))
        except PlanningError as e:
            logger.error(f"Planning failed: {e.reason}")
            print(json.dumps(e.to_dict(), indent=2))
            return 1

        if self.args.json:
            with open(self.args.json, 'w') as f:
                json.dump(plan.to_dict(), f, indent=2)
            logger.info(f"Wrote plan to {self.args.json}")

        self.print_plan(plan)
        return 0

    def print_plan(self, plan):
        print(f"Departure {plan.departure_time:%Y-%m-%d %H:%MZ}  arrival {plan.arrival_time:%Y-%m-%d %H:%MZ}")
        for segment in plan.segments:
            unit = 'nm' if segment.is_flight else 'mi'
            print(f"  {segment.type.value:6} {segment.origin:32} -> {segment.destination:32} "
                  f"{segment.duration_minutes:4d} min {segment.distance:7.1f} {unit}")
        scenarios = plan.scenarios
        print(f"Total {plan.total_minutes} min "
              f"(conservative {scenarios.conservative}, optimistic {scenarios.optimistic}), "
              f"confidence {plan.confidence}")
        if plan.approval.required:
            print("Approval required:")
            for label in ('pickup', 'delivery'):
                for violation in getattr(plan.approval, f"{label}_violations"):
                    print(f"  {label}: {violation['message']}")
        for advisory in plan.advisories:
            print(f"Note: {advisory}")


def main():
    parser = argparse.ArgumentParser(description='Plan an aircraft transport trip')
    parser.add_argument('pickup', help='Pickup location as lat,lon', type=parse_location)
    parser.add_argument('delivery', help='Delivery location as lat,lon', type=parse_location)
    parser.add_argument('-d', '--departure', help='Departure time (ISO 8601, UTC if no zone)',
                        type=parse_departure, default=None)
    parser.add_argument('--config', help='Operating configuration JSON file', default='operating_config.json')
    parser.add_argument('--pickup-airport', help='Use this airport for the pickup')
    parser.add_argument('--destination-airport', help='Use this airport for the delivery')
    parser.add_argument('--json', help='Write the full plan to this JSON file')
    parser.add_argument('--osrm-url', help='OSRM server', default=OsrmGroundRouter.BASE_URL)
    parser.add_argument('--no-routing', help='Estimate drives from straight-line distance', action='store_true')
    parser.add_argument('--synthetic-winds', help='Do not fetch winds aloft', action='store_true')
    parser.add_argument('--no-facilities', help='Do not look up fuel and approaches on AirNav', action='store_true')
    parser.add_argument('-c', '--cache-dir', help='Directory to cache files', default='cache')
    parser.add_argument('-v', '--verbose', help='Verbose output', action='store_true')
    parser.add_argument('--force-refresh', help='Force refresh of cached data', action='store_true')
    parser.add_argument('--never-refresh', help='Never refresh cached data if it exists', action='store_true')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.departure is None:
        args.departure = datetime.now(timezone.utc)

    try:
        tool = TripPlanningTool(args)
    except PlanningError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    return tool.run()


if __name__ == '__main__':
    sys.exit(main())
