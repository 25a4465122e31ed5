"""
VehicleAvailabilityChecker - decides whether a vehicle is free for a window

Read-only. Safe to call outside a transaction for advisory checks; the
assignment manager calls it with ``lock=True`` inside its own transaction for
the authoritative check.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Callable, List, Optional
from fleet_dispatch import db
from fleet_dispatch.data.core.vehicle import Vehicle
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.data.dispatching.enums import INACTIVE_JOB_STATUSES
from fleet_dispatch.buisness.dispatching.errors import NotFoundError
from fleet_dispatch.buisness.dispatching.policies import (
    ScheduleWindowPolicy,
    VehicleDispatchabilityPolicy,
    DoubleBookingSpecification,
    ConflictSummary,
)
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.dispatching.availability")

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)


@dataclass
class AvailabilityResult:
    available: bool
    vehicle_id: int
    vehicle_name: str
    scheduled_date: date
    start: time
    end: time
    conflicts: List[ConflictSummary] = field(default_factory=list)

    @property
    def duration_minutes(self) -> int:
        return VehicleAvailabilityChecker.duration_minutes(self.start, self.end)

    @property
    def message(self) -> str:
        if self.available:
            return 'Vehicle is available for this time slot'
        return f'Vehicle already has {len(self.conflicts)} job(s) scheduled during this time'

    def to_dict(self):
        return {
            'available': self.available,
            'message': self.message,
            'vehicle_id': self.vehicle_id,
            'vehicle_name': self.vehicle_name,
            'date': self.scheduled_date.isoformat(),
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'duration_minutes': self.duration_minutes,
            'conflicts': [c.to_dict() for c in self.conflicts],
        }


class VehicleAvailabilityChecker:
    """
    Availability queries for vehicles.

    Args:
        today: Reference clock for the "no bookings in the past" rule
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today

    def check_availability(
        self,
        vehicle_id: int,
        scheduled_date: date,
        start: time,
        end: time,
        exclude_job_id: Optional[int] = None,
        lock: bool = False
    ) -> AvailabilityResult:
        """
        Check if a vehicle is free for [start, end) on scheduled_date.

        Args:
            vehicle_id: The vehicle to check
            scheduled_date: Day of the booking
            start: Window start
            end: Window end (exclusive)
            exclude_job_id: Job whose own assignment should not count (moving a job)
            lock: Lock the vehicle row and candidate assignment rows (write transactions only)

        Returns:
            AvailabilityResult

        Raises:
            NotFoundError: Vehicle does not exist
            VehicleInactiveError: Vehicle is out of service
            ValidationError: Malformed or past window
        """
        vehicle = VehicleDispatchabilityPolicy.load(vehicle_id, lock=lock)
        ScheduleWindowPolicy.check(scheduled_date, start, end, today=self.today)

        conflicts = DoubleBookingSpecification.find_conflicts(
            vehicle.id, scheduled_date, start, end, exclude_job_id, lock=lock
        )

        logger.debug(
            f"Availability vehicle={vehicle.id} {scheduled_date} {start}-{end}: "
            f"{'free' if not conflicts else f'{len(conflicts)} conflict(s)'}"
        )

        return AvailabilityResult(
            available=not conflicts,
            vehicle_id=vehicle.id,
            vehicle_name=vehicle.vehicle_name,
            scheduled_date=scheduled_date,
            start=start,
            end=end,
            conflicts=conflicts,
        )

    def find_available_vehicles(self, scheduled_date: date, start: time, end: time) -> List[Vehicle]:
        """Active vehicles with no active assignment overlapping the window, ordered by name."""
        ScheduleWindowPolicy.check(scheduled_date, start, end, today=self.today)

        busy_vehicle_ids = (
            db.select(JobAssignment.vehicle_id)
            .join(Job, JobAssignment.job_id == Job.id)
            .where(
                Job.scheduled_date == scheduled_date,
                Job.current_status.notin_(INACTIVE_JOB_STATUSES),
                Job.scheduled_time_start < end,
                Job.scheduled_time_end > start,
            )
        )

        return (
            Vehicle.query
            .filter(Vehicle.is_active.is_(True), Vehicle.id.notin_(busy_vehicle_ids))
            .order_by(Vehicle.vehicle_name.asc())
            .all()
        )

    def get_vehicle_schedule(self, vehicle_id: int, scheduled_date: date) -> dict:
        """
        Occupied slots and free gaps for one vehicle on one day.

        Returns:
            dict with occupied_slots (Job list), available_gaps and total_jobs
        """
        vehicle = db.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)

        jobs = (
            Job.query
            .join(JobAssignment, JobAssignment.job_id == Job.id)
            .filter(
                JobAssignment.vehicle_id == vehicle_id,
                Job.scheduled_date == scheduled_date,
                Job.current_status.notin_(INACTIVE_JOB_STATUSES),
            )
            .order_by(Job.scheduled_time_start.asc())
            .all()
        )

        return {
            'vehicle_id': vehicle.id,
            'vehicle_name': vehicle.vehicle_name,
            'date': scheduled_date,
            'occupied_slots': jobs,
            'available_gaps': self.calculate_time_gaps(jobs),
            'total_jobs': len(jobs),
        }

    @staticmethod
    def calculate_time_gaps(jobs: List[Job]) -> List[dict]:
        """Free windows between the given jobs within the day."""
        if not jobs:
            return [{'start': DAY_START, 'end': DAY_END}]

        ordered = sorted(jobs, key=lambda j: j.scheduled_time_start)
        gaps = []

        if ordered[0].scheduled_time_start > DAY_START:
            gaps.append({'start': DAY_START, 'end': ordered[0].scheduled_time_start})

        latest_end = ordered[0].scheduled_time_end
        for job in ordered[1:]:
            if latest_end < job.scheduled_time_start:
                gaps.append({'start': latest_end, 'end': job.scheduled_time_start})
            latest_end = max(latest_end, job.scheduled_time_end)

        if latest_end < DAY_END:
            gaps.append({'start': latest_end, 'end': DAY_END})

        return gaps

    @staticmethod
    def duration_minutes(start: time, end: time) -> int:
        anchor = date(2000, 1, 1)
        delta = datetime.combine(anchor, end) - datetime.combine(anchor, start)
        return int(delta.total_seconds() // 60)
