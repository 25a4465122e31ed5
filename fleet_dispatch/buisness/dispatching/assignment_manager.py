"""
AssignmentManager - Domain service for vehicle-to-job bindings

The only component that creates or removes JobAssignment rows. Each public
operation is one unit of work: the availability check, the row replacement
and the status transition commit together or not at all.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional
from fleet_dispatch import db
from fleet_dispatch.data.core.user import User
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.data.dispatching.enums import JobStatus
from fleet_dispatch.buisness.core.unit_of_work import unit_of_work
from fleet_dispatch.buisness.dispatching.availability import VehicleAvailabilityChecker
from fleet_dispatch.buisness.dispatching.errors import (
    AssignmentNotAllowedError,
    CannotUnassignError,
    NotAssignedError,
    NotFoundError,
    TimeConflictError,
    ValidationError,
)
from fleet_dispatch.buisness.dispatching.narrator import AssignmentNarrator
from fleet_dispatch.buisness.dispatching.policies import DoubleBookingSpecification
from fleet_dispatch.buisness.dispatching.state_machine import TransitionVia
from fleet_dispatch.buisness.dispatching.status_manager import (
    JobStatusManager,
    current_assignment,
    load_job,
)
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.dispatching.assignment")

ASSIGNABLE_STATUSES = (JobStatus.PENDING, JobStatus.ASSIGNED)
UNASSIGN_BLOCKED_STATUSES = {
    JobStatus.IN_PROGRESS: 'Cannot unassign vehicle from job that is in progress',
    JobStatus.COMPLETED: 'Cannot unassign vehicle from completed job',
}


class AssignmentManager:
    """
    Domain service for assignment lifecycle operations.

    Responsibilities:
    - Run the authoritative availability check under the vehicle lock
    - Replace (delete then insert) the job's single assignment row
    - Drive the matching status transition through JobStatusManager
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.checker = VehicleAvailabilityChecker(today=today)
        self.status_manager = JobStatusManager()

    def assign_vehicle(
        self,
        job_id: int,
        vehicle_id: int,
        assigned_by: int,
        driver_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Assign a vehicle to a job, replacing any assignment the job already holds.

        Args:
            job_id: Job to assign
            vehicle_id: Vehicle to bind
            assigned_by: Acting user
            driver_id: Optional driver (user) for the run
            notes: Free-text dispatcher notes

        Returns:
            dict: Assignment details (see get_assignment_details)

        Raises:
            NotFoundError: Job, vehicle or driver missing
            AssignmentNotAllowedError: Job is not pending or assigned
            VehicleInactiveError: Vehicle is out of service
            ValidationError: Job window lies in the past
            TimeConflictError: Vehicle already booked for an overlapping window
        """
        with unit_of_work("assign_vehicle"):
            job = load_job(job_id, lock=True)
            logger.debug(f"Assign requested: {job.job_number} -> vehicle {vehicle_id} by user {assigned_by}")

            if job.current_status not in ASSIGNABLE_STATUSES:
                logger.warning(f"Assignment refused for {job.job_number}: status {job.current_status.value}")
                raise AssignmentNotAllowedError(
                    f'Cannot assign vehicle to job with status "{job.current_status.value}". '
                    f'Job must be "pending" or "assigned".',
                    job_id=job.id,
                    status=job.current_status.value,
                )

            if driver_id is not None and db.session.get(User, driver_id) is None:
                raise NotFoundError('Driver', driver_id)

            self._require_available(job, vehicle_id)

            previous = self._replace_assignment(job, vehicle_id, assigned_by, driver_id, notes)
            new_vehicle = previous['new'].vehicle

            self.status_manager.apply_transition(
                job,
                JobStatus.ASSIGNED,
                assigned_by,
                reason=AssignmentNarrator.vehicle_assigned(new_vehicle),
                via=TransitionVia.ASSIGNMENT,
            )

            if previous['old_vehicle'] is not None:
                logger.info(f"{job.job_number}: {AssignmentNarrator.vehicle_reassigned(previous['old_vehicle'], new_vehicle)}")
            else:
                logger.info(f"{job.job_number}: {AssignmentNarrator.vehicle_assigned(new_vehicle)}")

            details = self._details_view(previous['new'])

        return details

    def reassign_vehicle(
        self,
        job_id: int,
        new_vehicle_id: int,
        assigned_by: int,
        driver_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Move a pending or assigned job to another vehicle (replace-on-assign)."""
        return self.assign_vehicle(job_id, new_vehicle_id, assigned_by, driver_id=driver_id, notes=notes)

    def unassign_vehicle(self, job_id: int, changed_by: int) -> Dict[str, Any]:
        """
        Remove the job's vehicle and return it to pending.

        Returns:
            dict: {'message': str, 'job': Job}

        Raises:
            NotFoundError: Job missing
            NotAssignedError: Job holds no assignment
            CannotUnassignError: Job is in progress or completed
        """
        with unit_of_work("unassign_vehicle"):
            job = load_job(job_id, lock=True)
            assignment = current_assignment(job.id)

            if assignment is None:
                raise NotAssignedError('Job has no vehicle assignment', job_id=job.id)

            blocked = UNASSIGN_BLOCKED_STATUSES.get(job.current_status)
            if blocked:
                logger.warning(f"Unassign refused for {job.job_number}: status {job.current_status.value}")
                raise CannotUnassignError(blocked, job_id=job.id, status=job.current_status.value)

            vehicle_id = assignment.vehicle_id
            db.session.delete(assignment)
            db.session.flush()
            db.session.expire(job, ['assignment'])

            self.status_manager.apply_transition(
                job,
                JobStatus.PENDING,
                changed_by,
                reason=AssignmentNarrator.vehicle_unassigned(),
                via=TransitionVia.UNASSIGNMENT,
            )
            logger.info(f"{job.job_number}: unassigned from vehicle {vehicle_id} by user {changed_by}")

        return {'message': AssignmentNarrator.unassigned_message(job), 'job': job}

    def get_assignment_details(self, job_id: int) -> Optional[Dict[str, Any]]:
        """Joined assignment/job/vehicle/driver view, or None if the job is unassigned."""
        load_job(job_id)
        assignment = current_assignment(job_id)
        if assignment is None:
            return None
        return self._details_view(assignment)

    def get_assignments_by_date_range(
        self,
        start_date: date,
        end_date: date,
        vehicle_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Assignments whose job falls in [start_date, end_date], ordered by date and start."""
        if start_date is None or end_date is None:
            raise ValidationError("Both start_date and end_date are required")
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        query = (
            JobAssignment.query
            .join(Job, JobAssignment.job_id == Job.id)
            .filter(Job.scheduled_date >= start_date, Job.scheduled_date <= end_date)
        )
        if vehicle_id is not None:
            query = query.filter(JobAssignment.vehicle_id == vehicle_id)

        assignments = query.order_by(Job.scheduled_date.asc(), Job.scheduled_time_start.asc()).all()
        return [self._details_view(a) for a in assignments]

    def _require_available(self, job: Job, vehicle_id: int) -> None:
        result = self.checker.check_availability(
            vehicle_id,
            job.scheduled_date,
            job.scheduled_time_start,
            job.scheduled_time_end,
            exclude_job_id=job.id,
            lock=True,
        )
        if not result.available:
            logger.warning(
                f"Double booking prevented: {job.job_number} on vehicle {vehicle_id} "
                f"clashes with {', '.join(c.job_number for c in result.conflicts)}"
            )
            raise TimeConflictError(
                DoubleBookingSpecification.format_conflicts(
                    job.scheduled_date, job.scheduled_time_start, job.scheduled_time_end, result.conflicts
                ),
                result.conflicts,
            )

    def _replace_assignment(
        self,
        job: Job,
        vehicle_id: int,
        assigned_by: int,
        driver_id: Optional[int],
        notes: Optional[str]
    ) -> Dict[str, Any]:
        old = current_assignment(job.id)
        old_vehicle = None
        if old is not None:
            old_vehicle = old.vehicle
            db.session.delete(old)
            # The old row must be gone before the insert hits the job_id unique constraint
            db.session.flush()

        new = JobAssignment(
            job_id=job.id,
            vehicle_id=vehicle_id,
            driver_id=driver_id,
            notes=notes,
            assigned_by_id=assigned_by,
        )
        db.session.add(new)
        db.session.flush()
        db.session.expire(job, ['assignment'])

        return {'old_vehicle': old_vehicle, 'new': new}

    @staticmethod
    def _details_view(assignment: JobAssignment) -> Dict[str, Any]:
        job = assignment.job
        vehicle = assignment.vehicle
        driver = assignment.driver
        assigned_by = assignment.assigned_by

        return {
            'assignment_id': assignment.id,
            'job_id': job.id,
            'job_number': job.job_number,
            'job_type': job.job_type.value,
            'priority': job.priority.value,
            'customer_name': job.customer_name,
            'customer_address': job.customer_address,
            'scheduled_date': job.scheduled_date.isoformat(),
            'scheduled_time_start': job.scheduled_time_start.isoformat(),
            'scheduled_time_end': job.scheduled_time_end.isoformat(),
            'current_status': job.current_status.value,
            'vehicle': {
                'id': vehicle.id,
                'vehicle_name': vehicle.vehicle_name,
                'license_plate': vehicle.license_plate,
                'vehicle_type': vehicle.vehicle_type.value,
            },
            'driver': {
                'id': driver.id,
                'name': driver.display_name,
                'phone': driver.phone,
            } if driver else None,
            'notes': assignment.notes,
            'assigned_by': {
                'id': assigned_by.id,
                'name': assigned_by.display_name,
            } if assigned_by else None,
            'assigned_at': assignment.assigned_at.isoformat() if assignment.assigned_at else None,
        }
