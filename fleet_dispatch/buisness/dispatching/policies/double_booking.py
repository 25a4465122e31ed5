"""
Double Booking Specification

Prevents overlapping active assignments for the same vehicle.
"""

from dataclasses import dataclass, asdict
from datetime import date, time
from typing import List, Optional
from sqlalchemy.orm import aliased
from fleet_dispatch import db
from fleet_dispatch.data.core.user import User
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.data.dispatching.enums import INACTIVE_JOB_STATUSES


@dataclass(frozen=True)
class ConflictSummary:
    """Enough about a clashing job to render a human-actionable error."""
    job_id: int
    job_number: str
    customer_name: str
    job_type: str
    priority: str
    status: str
    scheduled_date: date
    scheduled_time_start: time
    scheduled_time_end: time
    driver_name: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data['scheduled_date'] = self.scheduled_date.isoformat()
        data['scheduled_time_start'] = self.scheduled_time_start.isoformat()
        data['scheduled_time_end'] = self.scheduled_time_end.isoformat()
        return data


class DoubleBookingSpecification:
    """
    Specification pattern for detecting double-booking conflicts.

    Two windows on the same vehicle and date conflict iff
    ``start < other_end AND end > other_start`` (half-open, so back-to-back
    jobs do not clash). Only assignments whose job is not completed or
    cancelled take part.
    """

    @classmethod
    def find_conflicts(
        cls,
        vehicle_id: int,
        scheduled_date: date,
        start: time,
        end: time,
        exclude_job_id: Optional[int] = None,
        lock: bool = False
    ) -> List[ConflictSummary]:
        """
        Find active assignments on the vehicle overlapping [start, end).

        Args:
            vehicle_id: The vehicle being booked
            scheduled_date: Day of the booking
            start: Window start (inclusive)
            end: Window end (exclusive)
            exclude_job_id: Job whose own assignment is ignored (reassignment/reschedule)
            lock: Run as a locking read (authoritative check inside a write transaction)

        Returns:
            list: ConflictSummary objects ordered by start time
        """
        driver = aliased(User)

        query = (
            db.session.query(Job, driver.full_name, driver.username)
            .join(JobAssignment, JobAssignment.job_id == Job.id)
            .outerjoin(driver, JobAssignment.driver_id == driver.id)
            .filter(
                JobAssignment.vehicle_id == vehicle_id,
                Job.scheduled_date == scheduled_date,
                Job.current_status.notin_(INACTIVE_JOB_STATUSES),
                # Overlap condition: (start1 < end2) AND (end1 > start2)
                Job.scheduled_time_start < end,
                Job.scheduled_time_end > start,
            )
        )

        if exclude_job_id is not None:
            query = query.filter(Job.id != exclude_job_id)

        query = query.order_by(Job.scheduled_time_start.asc(), Job.id.asc())

        if lock:
            query = query.with_for_update(of=JobAssignment)

        return [
            ConflictSummary(
                job_id=job.id,
                job_number=job.job_number,
                customer_name=job.customer_name,
                job_type=job.job_type.value,
                priority=job.priority.value,
                status=job.current_status.value,
                scheduled_date=job.scheduled_date,
                scheduled_time_start=job.scheduled_time_start,
                scheduled_time_end=job.scheduled_time_end,
                driver_name=driver_full_name or driver_username,
            )
            for job, driver_full_name, driver_username in query.all()
        ]

    @classmethod
    def format_conflicts(cls, scheduled_date: date, start: time, end: time,
                         conflicts: List[ConflictSummary]) -> str:
        """Format conflict list for error message"""
        lines = [
            f"Vehicle is already scheduled during "
            f"{scheduled_date.isoformat()} {start.isoformat()} - {end.isoformat()}. "
            f"Conflicting jobs ({len(conflicts)}):"
        ]
        for index, conflict in enumerate(conflicts, start=1):
            line = (
                f"{index}. {conflict.job_number} | {conflict.customer_name} | "
                f"{conflict.scheduled_time_start.isoformat()} - {conflict.scheduled_time_end.isoformat()} | "
                f"{conflict.status}"
            )
            if conflict.driver_name:
                line += f" | Driver: {conflict.driver_name}"
            lines.append(line)
        lines.append("Choose a different vehicle or reschedule the job.")
        return "\n".join(lines)
