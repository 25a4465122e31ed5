"""
State machine for the job lifecycle

Encodes valid transitions and guard conditions.
Keeps "what is allowed" separate from "how persistence occurs": callers supply
the facts (has the job an assignment, which operation is asking) and apply the
resulting decision themselves.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
from fleet_dispatch.data.dispatching.enums import JobStatus
from fleet_dispatch.buisness.dispatching.errors import InvalidTransitionError, MissingAssignmentError


class TransitionVia(str, Enum):
    """Which operation is requesting the transition."""
    STATUS_UPDATE = 'status_update'
    ASSIGNMENT = 'assignment'
    UNASSIGNMENT = 'unassignment'
    REOPEN = 'reopen'


@dataclass(frozen=True)
class TransitionContext:
    has_assignment: bool = False
    via: TransitionVia = TransitionVia.STATUS_UPDATE


@dataclass(frozen=True)
class TransitionDecision:
    """
    Outcome of a legal transition.

    noop: current == target, nothing to persist
    release_assignment: caller must delete the job's assignment row in the same transaction
    """
    noop: bool = False
    release_assignment: bool = False


class JobStateMachine:
    """
    State machine for Job.current_status transitions.

    pending -> assigned -> in_progress -> completed is the happy path;
    cancelled can be reopened to pending; completed is terminal.
    """

    PENDING = JobStatus.PENDING
    ASSIGNED = JobStatus.ASSIGNED
    IN_PROGRESS = JobStatus.IN_PROGRESS
    COMPLETED = JobStatus.COMPLETED
    CANCELLED = JobStatus.CANCELLED

    TERMINAL_STATES = frozenset({COMPLETED})

    # from_status -> allowed to_status values, in display order
    TRANSITIONS: Dict[JobStatus, Tuple[JobStatus, ...]] = {
        PENDING: (ASSIGNED, CANCELLED),
        ASSIGNED: (IN_PROGRESS, CANCELLED, PENDING),  # pending only via unassignment
        IN_PROGRESS: (COMPLETED, CANCELLED),
        COMPLETED: (),
        CANCELLED: (PENDING,),  # reopen or unassignment
    }

    STATUS_DESCRIPTIONS = {
        PENDING: 'Job created, awaiting vehicle assignment',
        ASSIGNED: 'Vehicle assigned, awaiting start',
        IN_PROGRESS: 'Driver has started the job',
        COMPLETED: 'Job successfully completed',
        CANCELLED: 'Job cancelled and will not be completed',
    }

    @classmethod
    def allowed_transitions(cls, from_status: JobStatus) -> Tuple[JobStatus, ...]:
        """Get the table's target statuses from current status"""
        return cls.TRANSITIONS[JobStatus(from_status)]

    @classmethod
    def available_transitions(cls, from_status: JobStatus, has_assignment: bool = False) -> List[JobStatus]:
        """
        Targets a plain status update can actually reach.

        Narrower than the table: assigning and unassigning are not status
        updates, and starting work needs a vehicle.
        """
        current = JobStatus(from_status)
        ctx = TransitionContext(has_assignment=has_assignment)
        return [
            target for target in cls.allowed_transitions(current)
            if cls._refusal(current, target, ctx) is None
        ]

    @classmethod
    def validate(cls, current: JobStatus, target: JobStatus,
                 ctx: TransitionContext = TransitionContext()) -> TransitionDecision:
        """
        Validate a transition and describe its required side effects.

        Args:
            current: Job's current status
            target: Requested status
            ctx: Facts the caller knows (assignment presence, requesting operation)

        Returns:
            TransitionDecision

        Raises:
            InvalidTransitionError: Transition not in the table or guard failed
            MissingAssignmentError: Target needs a vehicle binding the job lacks
        """
        current = JobStatus(current)
        target = JobStatus(target)

        if current == target:
            return TransitionDecision(noop=True)

        refusal = cls._refusal(current, target, ctx)
        if refusal is not None:
            error_class, message = refusal
            if error_class is MissingAssignmentError:
                raise MissingAssignmentError(message)

            allowed = cls.available_transitions(current, has_assignment=ctx.has_assignment)
            if allowed:
                message = f'{message}; allowed from "{current.value}": {", ".join(s.value for s in allowed)}'
            raise InvalidTransitionError(
                f"Invalid status transition: {message}",
                current=current,
                target=target,
                allowed=allowed,
            )

        if target == cls.PENDING and current == cls.CANCELLED and ctx.has_assignment:
            # A reopened job must not silently re-occupy its old vehicle window
            return TransitionDecision(release_assignment=True)

        return TransitionDecision()

    @classmethod
    def can_transition(cls, current: JobStatus, target: JobStatus,
                       ctx: TransitionContext = TransitionContext()) -> bool:
        """Check if transition is valid without raising"""
        try:
            cls.validate(current, target, ctx)
        except (InvalidTransitionError, MissingAssignmentError):
            return False
        return True

    @classmethod
    def validate_workflow(cls, current: JobStatus, target: JobStatus, has_assignment: bool) -> List[str]:
        """
        Collect every reason a status update to ``target`` would be refused.

        Returns:
            list: Error messages; empty when the update would succeed
        """
        errors = []
        ctx = TransitionContext(has_assignment=has_assignment)
        try:
            cls.validate(current, target, ctx)
        except InvalidTransitionError as e:
            errors.append(e.message)
        except MissingAssignmentError as e:
            errors.append(e.message)
        if JobStatus(target) == cls.IN_PROGRESS and JobStatus(current) != cls.ASSIGNED:
            message = 'Job must be in "assigned" status'
            if message not in errors:
                errors.append(message)
        return errors

    @classmethod
    def _refusal(cls, current: JobStatus, target: JobStatus,
                 ctx: TransitionContext) -> Optional[Tuple[type, str]]:
        """(error class, message) for a refused transition, or None if it is legal."""
        # Missing binding takes precedence over the table check
        if target == cls.IN_PROGRESS and not ctx.has_assignment and current in (cls.PENDING, cls.ASSIGNED):
            return MissingAssignmentError, (
                'Cannot start job without a vehicle assignment. '
                'Please assign a vehicle first before changing status to "in_progress".'
            )

        if target not in cls.allowed_transitions(current):
            message = f'Cannot change from "{current.value}" to "{target.value}"'
            if current in cls.TERMINAL_STATES:
                message += f' ("{current.value}" is a final state)'
            return InvalidTransitionError, message

        if ctx.via == TransitionVia.UNASSIGNMENT and target != cls.PENDING:
            return InvalidTransitionError, "Unassignment can only return a job to pending"

        if target == cls.ASSIGNED:
            if ctx.via != TransitionVia.ASSIGNMENT:
                return InvalidTransitionError, "Jobs become assigned only by assigning a vehicle"
            if not ctx.has_assignment:
                return MissingAssignmentError, "Cannot mark job assigned without a vehicle assignment"

        elif target == cls.PENDING:
            if current == cls.ASSIGNED and ctx.via != TransitionVia.UNASSIGNMENT:
                return InvalidTransitionError, "An assigned job returns to pending only by unassigning its vehicle"
            if current == cls.CANCELLED and ctx.via == TransitionVia.ASSIGNMENT:
                return InvalidTransitionError, "A cancelled job returns to pending only by reopening or unassigning it"

        return None
