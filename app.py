#!/usr/bin/env python3
"""
Run script for Fleet Dispatch

Builds the database (tables, critical data, optional debug data) and can
print a vehicle's schedule for a day.
"""

import argparse
import json
import sys
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fleet_dispatch import create_app
from fleet_dispatch.build import build_database
from fleet_dispatch.buisness.dispatching.errors import DispatchDomainError
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.run")


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Fleet Dispatch')
    parser.add_argument('--enable-debug-data', action='store_true', default=True,
                        help='Enable debug data insertion (default: enabled if flag not present)')
    parser.add_argument('--no-debug-data', action='store_false', dest='enable_debug_data',
                        help='Disable debug data insertion')
    parser.add_argument('--skip-build', action='store_true',
                        help='Do not build the database before running other commands')
    parser.add_argument('--schedule', nargs=2, metavar=('VEHICLE_ID', 'DATE'),
                        help='Print the schedule of a vehicle for a date (YYYY-MM-DD) as JSON')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)
    app = create_app()

    if not args.skip_build:
        build_database(enable_debug_data=args.enable_debug_data, app=app)

    if args.schedule:
        from fleet_dispatch.services.dispatching import SchedulingService

        vehicle_id, scheduled_date = args.schedule
        with app.app_context():
            try:
                schedule = SchedulingService().get_vehicle_schedule(int(vehicle_id), scheduled_date)
            except DispatchDomainError as e:
                logger.error(f"Schedule lookup failed: {e.message}")
                print(json.dumps(e.to_dict(), indent=2))
                return 1
        print(json.dumps(schedule, indent=2))

    return 0


if __name__ == '__main__':
    sys.exit(main())
