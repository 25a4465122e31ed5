"""
Dispatching business layer.

Allocation and lifecycle of jobs on vehicles:
- VehicleAvailabilityChecker: Overlap/conflict detection for a vehicle window
- JobStateMachine: Status transition table and guards
- JobStatusManager: Applies transitions and keeps the status history
- AssignmentManager: Atomic assign/unassign/reassign of vehicles
- JobManager: Job creation, rescheduling and guarded deletion
- Policies: Business rule validation
- AssignmentNarrator: History reason text
"""

from fleet_dispatch.buisness.dispatching.availability import VehicleAvailabilityChecker, AvailabilityResult
from fleet_dispatch.buisness.dispatching.state_machine import (
    JobStateMachine,
    TransitionContext,
    TransitionDecision,
    TransitionVia,
)
from fleet_dispatch.buisness.dispatching.status_manager import JobStatusManager
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.job_manager import JobManager
from fleet_dispatch.buisness.dispatching.errors import (
    DispatchDomainError,
    DispatchTransitionError,
    DispatchPolicyViolation,
    DispatchConsistencyError,
    DispatchConflictError,
    NotFoundError,
    ValidationError,
    AssignmentNotAllowedError,
    VehicleInactiveError,
    NotAssignedError,
    CannotUnassignError,
    JobDeletionBlockedError,
    TimeConflictError,
    InvalidTransitionError,
    MissingAssignmentError,
    StorageError,
    ERROR_HTTP_STATUS,
)

__all__ = [
    'VehicleAvailabilityChecker',
    'AvailabilityResult',
    'JobStateMachine',
    'TransitionContext',
    'TransitionDecision',
    'TransitionVia',
    'JobStatusManager',
    'AssignmentManager',
    'JobManager',
    'DispatchDomainError',
    'DispatchTransitionError',
    'DispatchPolicyViolation',
    'DispatchConsistencyError',
    'DispatchConflictError',
    'NotFoundError',
    'ValidationError',
    'AssignmentNotAllowedError',
    'VehicleInactiveError',
    'NotAssignedError',
    'CannotUnassignError',
    'JobDeletionBlockedError',
    'TimeConflictError',
    'InvalidTransitionError',
    'MissingAssignmentError',
    'StorageError',
    'ERROR_HTTP_STATUS',
]
