"""
JobManager - Job operations that touch scheduling or lifecycle invariants

Creation, rescheduling and deletion. Plain listing and cosmetic field edits
belong to the surrounding CRUD layer.
"""

from datetime import date, time
from typing import Callable, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from fleet_dispatch import db
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_status_change import JobStatusChange
from fleet_dispatch.data.dispatching.enums import JobPriority, JobStatus, JobType
from fleet_dispatch.buisness.core.unit_of_work import unit_of_work
from fleet_dispatch.buisness.dispatching.availability import VehicleAvailabilityChecker
from fleet_dispatch.buisness.dispatching.errors import (
    JobDeletionBlockedError,
    TimeConflictError,
    ValidationError,
)
from fleet_dispatch.buisness.dispatching.policies import ScheduleWindowPolicy, DoubleBookingSpecification
from fleet_dispatch.buisness.dispatching.status_manager import current_assignment, load_job
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.dispatching.jobs")

JOB_NUMBER_PREFIX = 'JOB-'
JOB_NUMBER_ATTEMPTS = 3
RESCHEDULABLE_STATUSES = (JobStatus.PENDING, JobStatus.ASSIGNED)


def _parse_enum(enum_cls, value, field_name):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ', '.join(m.value for m in enum_cls)
        raise ValidationError(f'Invalid {field_name}: "{value}". Must be one of: {valid}', field=field_name)


class JobManager:
    """
    Args:
        today: Reference clock for the past-date rule and job numbering
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today
        self.checker = VehicleAvailabilityChecker(today=self.today)

    def next_job_number(self) -> str:
        """Next number in the JOB-YYYY-NNNN sequence for the current year."""
        prefix = f"{JOB_NUMBER_PREFIX}{self.today().year}-"
        last = (
            db.session.query(Job.job_number)
            .filter(Job.job_number.like(f"{prefix}%"))
            # Suffixes grow past four digits, so longer numbers sort higher
            .order_by(func.length(Job.job_number).desc(), Job.job_number.desc())
            .first()
        )
        next_number = int(last[0].rsplit('-', 1)[1]) + 1 if last else 1
        return f"{prefix}{next_number:04d}"

    def create_job(
        self,
        created_by: int,
        customer_name: str,
        job_type,
        scheduled_date: date,
        scheduled_time_start: time,
        scheduled_time_end: time,
        priority=JobPriority.NORMAL,
        customer_phone: Optional[str] = None,
        customer_address: Optional[str] = None,
        description: Optional[str] = None
    ) -> Job:
        """
        Create a pending job with a generated job number.

        Raises:
            ValidationError: Missing customer, unknown type/priority, or a bad window
        """
        if not customer_name:
            raise ValidationError("Customer name is required", field='customer_name')

        job_type = _parse_enum(JobType, job_type, 'job_type')
        priority = _parse_enum(JobPriority, priority, 'priority')
        ScheduleWindowPolicy.check(scheduled_date, scheduled_time_start, scheduled_time_end, today=self.today)

        with unit_of_work("create_job"):
            job = Job(
                job_type=job_type,
                priority=priority,
                customer_name=customer_name,
                customer_phone=customer_phone,
                customer_address=customer_address,
                description=description,
                scheduled_date=scheduled_date,
                scheduled_time_start=scheduled_time_start,
                scheduled_time_end=scheduled_time_end,
                estimated_duration_minutes=VehicleAvailabilityChecker.duration_minutes(
                    scheduled_time_start, scheduled_time_end
                ),
                current_status=JobStatus.PENDING,
                created_by_id=created_by,
                updated_by_id=created_by,
            )
            self._insert_numbered(job)
            logger.info(f"Created job {job.job_number} for {customer_name} on {scheduled_date.isoformat()}")

        return job

    def _insert_numbered(self, job: Job) -> None:
        """
        Give the job the next free number and flush it.

        A number taken by a concurrent insert fails the unique constraint and
        is retried inside a savepoint.
        """
        for attempt in range(1, JOB_NUMBER_ATTEMPTS + 1):
            job.job_number = self.next_job_number()
            try:
                with db.session.begin_nested():
                    db.session.add(job)
                    db.session.flush()
                return
            except IntegrityError:
                if attempt == JOB_NUMBER_ATTEMPTS:
                    raise
                logger.warning(f"Job number {job.job_number} already taken, retrying")

    def reschedule_job(
        self,
        job_id: int,
        changed_by: int,
        scheduled_date: Optional[date] = None,
        scheduled_time_start: Optional[time] = None,
        scheduled_time_end: Optional[time] = None
    ) -> Job:
        """
        Move a pending or assigned job to a new window.

        A job holding a vehicle keeps it only if the vehicle is free for the
        new window; otherwise the move is refused with TimeConflictError.
        """
        with unit_of_work("reschedule_job"):
            job = load_job(job_id, lock=True)

            if job.current_status not in RESCHEDULABLE_STATUSES:
                raise ValidationError(
                    f'Cannot reschedule job with status "{job.current_status.value}"',
                    job_id=job.id,
                    status=job.current_status.value,
                )

            new_date = scheduled_date or job.scheduled_date
            new_start = scheduled_time_start or job.scheduled_time_start
            new_end = scheduled_time_end or job.scheduled_time_end

            assignment = current_assignment(job.id)
            if assignment is None:
                ScheduleWindowPolicy.check(new_date, new_start, new_end, today=self.today)
            else:
                result = self.checker.check_availability(
                    assignment.vehicle_id, new_date, new_start, new_end,
                    exclude_job_id=job.id, lock=True,
                )
                if not result.available:
                    logger.warning(f"Reschedule of {job.job_number} refused: vehicle {assignment.vehicle_id} is busy")
                    raise TimeConflictError(
                        DoubleBookingSpecification.format_conflicts(new_date, new_start, new_end, result.conflicts),
                        result.conflicts,
                    )

            job.scheduled_date = new_date
            job.scheduled_time_start = new_start
            job.scheduled_time_end = new_end
            job.estimated_duration_minutes = VehicleAvailabilityChecker.duration_minutes(new_start, new_end)
            job.updated_by_id = changed_by
            logger.info(f"Rescheduled {job.job_number} to {new_date.isoformat()} {new_start}-{new_end}")

        return job

    def delete_job(self, job_id: int) -> None:
        """
        Physically delete a job that never entered the lifecycle.

        Raises:
            JobDeletionBlockedError: Job holds an assignment or has status history
        """
        with unit_of_work("delete_job"):
            job = load_job(job_id, lock=True)

            has_history = db.session.query(
                JobStatusChange.query.filter(JobStatusChange.job_id == job.id).exists()
            ).scalar()

            if current_assignment(job.id) is not None or has_history:
                raise JobDeletionBlockedError(
                    f"Job {job.job_number} has assignment history and cannot be deleted. Cancel it instead.",
                    job_id=job.id,
                )

            db.session.delete(job)
            logger.info(f"Deleted job {job.job_number}")
