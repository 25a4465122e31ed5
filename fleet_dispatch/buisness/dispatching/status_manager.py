"""
JobStatusManager - Domain service for job status transitions

Applies JobStateMachine decisions to persistence and keeps the append-only
status history. ``apply_transition`` never commits, so the assignment manager
can call it inside its own transaction.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from fleet_dispatch import db
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.data.dispatching.job_status_change import JobStatusChange
from fleet_dispatch.data.dispatching.enums import JobStatus
from fleet_dispatch.buisness.core.unit_of_work import unit_of_work
from fleet_dispatch.buisness.dispatching.errors import (
    InvalidTransitionError,
    MissingAssignmentError,
    NotFoundError,
    ValidationError,
)
from fleet_dispatch.buisness.dispatching.narrator import AssignmentNarrator
from fleet_dispatch.buisness.dispatching.state_machine import (
    JobStateMachine,
    TransitionContext,
    TransitionVia,
)
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.dispatching.status")


def parse_status(value) -> JobStatus:
    """Coerce a status value from the outside world, rejecting unknown strings."""
    try:
        return JobStatus(value)
    except ValueError:
        valid = ', '.join(s.value for s in JobStatus)
        raise ValidationError(f'Invalid status: "{value}". Valid statuses are: {valid}', status=value)


def load_job(job_id: int, lock: bool = False) -> Job:
    query = Job.query.filter(Job.id == job_id)
    if lock:
        query = query.with_for_update().populate_existing()
    job = query.first()
    if job is None:
        raise NotFoundError('Job', job_id)
    return job


def current_assignment(job_id: int) -> Optional[JobAssignment]:
    return JobAssignment.query.filter_by(job_id=job_id).first()


class JobStatusManager:
    """
    Domain service for status lifecycle operations.

    Responsibilities:
    - Validate transitions through JobStateMachine
    - Apply required side effects (releasing a stale assignment on reopen)
    - Append exactly one JobStatusChange per real transition
    """

    def update_status(
        self,
        job_id: int,
        new_status,
        changed_by: int,
        reason: Optional[str] = None
    ) -> Tuple[Job, Optional[JobStatusChange]]:
        """
        Change a job's status as a standalone, atomic operation.

        A request for the current status is a no-op and records nothing.

        Returns:
            tuple: (job, status_change) where status_change is None for a no-op

        Raises:
            ValidationError: Unknown status value
            NotFoundError: Job does not exist
            InvalidTransitionError / MissingAssignmentError: Rejected by the state machine
        """
        target = parse_status(new_status)

        with unit_of_work("update_status"):
            job = load_job(job_id, lock=True)
            logger.debug(f"Status update requested: {job.job_number} {job.current_status.value} -> {target.value}")
            change = self.apply_transition(job, target, changed_by, reason)

        return job, change

    def reopen(self, job_id: int, changed_by: int, reason: Optional[str] = None) -> Tuple[Job, Optional[JobStatusChange]]:
        """Return a cancelled job to pending, releasing any assignment it still holds."""
        with unit_of_work("reopen_job"):
            job = load_job(job_id, lock=True)
            change = self.apply_transition(job, JobStatus.PENDING, changed_by, reason, via=TransitionVia.REOPEN)
        return job, change

    def apply_transition(
        self,
        job: Job,
        target: JobStatus,
        actor_id: int,
        reason: Optional[str] = None,
        via: TransitionVia = TransitionVia.STATUS_UPDATE
    ) -> Optional[JobStatusChange]:
        """
        Validate and apply a transition inside the caller's transaction.

        Returns:
            JobStatusChange, or None when the transition is a no-op
        """
        assignment = current_assignment(job.id)
        ctx = TransitionContext(has_assignment=assignment is not None, via=via)

        try:
            decision = JobStateMachine.validate(job.current_status, target, ctx)
        except (InvalidTransitionError, MissingAssignmentError) as e:
            logger.warning(f"Transition rejected for {job.job_number}: {e}")
            raise

        if decision.noop:
            logger.debug(f"Status unchanged (already {target.value}) for {job.job_number}")
            return None

        if decision.release_assignment:
            released_vehicle = assignment.vehicle
            db.session.delete(assignment)
            db.session.flush()
            db.session.expire(job, ['assignment'])
            reason = AssignmentNarrator.job_reopened(released_vehicle, reason)
            logger.info(f"Released stale assignment of {job.job_number} on vehicle {released_vehicle.id}")

        old_status = job.current_status
        job.current_status = target
        job.updated_by_id = actor_id

        change = JobStatusChange(
            job_id=job.id,
            old_status=old_status,
            new_status=target,
            changed_by_id=actor_id,
            reason=reason,
            changed_at=datetime.utcnow(),
        )
        db.session.add(change)
        db.session.flush()

        logger.info(f"Status changed: {job.job_number} {JobStatus(old_status).value} -> {target.value} by user {actor_id}")
        return change

    def get_allowed_transitions(self, job_id: int) -> List[JobStatus]:
        """Statuses update_status would accept for this job right now."""
        job = load_job(job_id)
        return JobStateMachine.available_transitions(
            job.current_status, has_assignment=current_assignment(job.id) is not None
        )

    def validate_workflow(self, job_id: int, new_status) -> List[str]:
        """Non-raising pre-flight check; returns the reasons an update would fail."""
        target = parse_status(new_status)
        job = load_job(job_id)
        return JobStateMachine.validate_workflow(
            job.current_status, target, has_assignment=current_assignment(job.id) is not None
        )

    def get_status_history(self, job_id: int, limit: Optional[int] = None) -> List[JobStatusChange]:
        """Status changes for one job, newest first."""
        load_job(job_id)
        query = (
            JobStatusChange.query
            .filter(JobStatusChange.job_id == job_id)
            .order_by(JobStatusChange.changed_at.desc(), JobStatusChange.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_recent_status_changes(self, limit: int = 50, status=None, days: Optional[int] = None) -> List[JobStatusChange]:
        """Recent status changes across all jobs, newest first (dashboard/monitoring)."""
        query = JobStatusChange.query
        if status:
            query = query.filter(JobStatusChange.new_status == parse_status(status))
        if days:
            query = query.filter(JobStatusChange.changed_at >= datetime.utcnow() - timedelta(days=days))
        return (
            query.order_by(JobStatusChange.changed_at.desc(), JobStatusChange.id.desc())
            .limit(limit)
            .all()
        )
