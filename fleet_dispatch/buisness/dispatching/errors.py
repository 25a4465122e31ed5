"""
Domain exceptions for dispatching business logic

These exceptions represent business rule violations and domain-specific errors.
Each carries a stable ``code`` so callers can tell the kinds apart without
parsing messages.
"""


class DispatchDomainError(Exception):
    """Base exception for all dispatching domain errors"""

    code = 'dispatch_error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {'error': self.code, 'message': self.message, **self.details}


class DispatchTransitionError(DispatchDomainError):
    """Raised when a state transition is invalid or not allowed"""
    code = 'transition_error'


class DispatchPolicyViolation(DispatchDomainError):
    """Raised when a business policy/rule is violated"""
    code = 'policy_violation'


class DispatchConsistencyError(DispatchDomainError):
    """Raised when data consistency invariants cannot be upheld"""
    code = 'consistency_error'


class DispatchConflictError(DispatchDomainError):
    """Raised when resource conflicts occur (e.g., double booking)"""
    code = 'conflict'


class NotFoundError(DispatchDomainError):
    """Raised when a job or vehicle does not exist"""
    code = 'not_found'

    def __init__(self, entity, entity_id):
        super().__init__(f"{entity} with ID {entity_id} not found", entity=entity, entity_id=entity_id)


class ValidationError(DispatchDomainError):
    """Raised for malformed input: bad window, bad status value, missing field"""
    code = 'validation_error'


class AssignmentNotAllowedError(DispatchPolicyViolation):
    """Raised when the job's status precludes assigning a vehicle"""
    code = 'assignment_not_allowed'


class VehicleInactiveError(DispatchPolicyViolation):
    """Raised when a vehicle is out of service"""
    code = 'vehicle_inactive'


class NotAssignedError(DispatchPolicyViolation):
    """Raised when unassigning a job that holds no assignment"""
    code = 'not_assigned'


class CannotUnassignError(DispatchPolicyViolation):
    """Raised when unassigning an in-progress or completed job"""
    code = 'cannot_unassign'


class JobDeletionBlockedError(DispatchPolicyViolation):
    """Raised when deleting a job that already has lifecycle history"""
    code = 'job_deletion_blocked'


class TimeConflictError(DispatchConflictError):
    """Raised when a vehicle is double-booked for overlapping time windows"""
    code = 'time_conflict'

    def __init__(self, message, conflicts):
        super().__init__(message, conflicts=[c.to_dict() for c in conflicts])
        self.conflicts = conflicts


class InvalidTransitionError(DispatchTransitionError):
    """Raised when the status machine rejects a transition"""
    code = 'invalid_transition'

    def __init__(self, message, current, target, allowed):
        super().__init__(
            message,
            current=current.value,
            target=target.value,
            allowed=[s.value for s in allowed],
        )
        self.current = current
        self.target = target
        self.allowed = allowed


class MissingAssignmentError(DispatchTransitionError):
    """Raised when a transition needs a vehicle binding the job does not have"""
    code = 'missing_assignment'


class StorageError(DispatchConsistencyError):
    """Raised when the underlying transaction fails and was rolled back"""
    code = 'storage_error'


# Suggested mapping for the HTTP layer; the domain never consults it.
ERROR_HTTP_STATUS = {
    NotFoundError.code: 404,
    ValidationError.code: 400,
    AssignmentNotAllowedError.code: 400,
    VehicleInactiveError.code: 400,
    NotAssignedError.code: 400,
    CannotUnassignError.code: 400,
    JobDeletionBlockedError.code: 400,
    InvalidTransitionError.code: 400,
    MissingAssignmentError.code: 400,
    TimeConflictError.code: 409,
    StorageError.code: 500,
}
