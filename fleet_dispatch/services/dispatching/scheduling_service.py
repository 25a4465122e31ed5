"""
Scheduling Service
Presentation service for assignment, availability and status operations.

Accepts the loosely-typed values an HTTP layer has at hand (ISO date/time
strings, status strings) and returns plain dicts.
"""

from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Union
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_status_change import JobStatusChange
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.availability import VehicleAvailabilityChecker
from fleet_dispatch.buisness.dispatching.errors import ValidationError
from fleet_dispatch.buisness.dispatching.state_machine import JobStateMachine
from fleet_dispatch.buisness.dispatching.status_manager import JobStatusManager


def parse_date(value: Union[str, date], field_name: str = 'date') -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field_name}: "{value}". Expected YYYY-MM-DD', field=field_name)


def parse_time(value: Union[str, time], field_name: str = 'time') -> time:
    if isinstance(value, time):
        return value
    for fmt in ('%H:%M:%S', '%H:%M'):
        try:
            return datetime.strptime(value, fmt).time()
        except (TypeError, ValueError):
            continue
    raise ValidationError(f'Invalid {field_name}: "{value}". Expected HH:MM:SS', field=field_name)


def job_summary(job: Job) -> Dict[str, Any]:
    return {
        'id': job.id,
        'job_number': job.job_number,
        'customer_name': job.customer_name,
        'job_type': job.job_type.value,
        'priority': job.priority.value,
        'scheduled_date': job.scheduled_date.isoformat(),
        'scheduled_time_start': job.scheduled_time_start.isoformat(),
        'scheduled_time_end': job.scheduled_time_end.isoformat(),
        'current_status': job.current_status.value,
    }


def status_change_view(change: JobStatusChange, include_job: bool = False) -> Dict[str, Any]:
    data = {
        'id': change.id,
        'job_id': change.job_id,
        'old_status': change.old_status.value,
        'new_status': change.new_status.value,
        'reason': change.reason,
        'changed_at': change.changed_at.isoformat(),
        'changed_by': {
            'id': change.changed_by_id,
            'name': change.changed_by.display_name if change.changed_by else None,
        },
    }
    if include_job:
        data['job_number'] = change.job.job_number
        data['customer_name'] = change.job.customer_name
    return data


class SchedulingService:
    """
    Service for scheduling presentation data.

    Provides methods for:
    - Assigning, unassigning and reassigning vehicles
    - Advisory conflict checks and vehicle schedules
    - Status updates, allowed transitions and history
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.checker = VehicleAvailabilityChecker(today=today)
        self.assignments = AssignmentManager(today=today)
        self.statuses = JobStatusManager()

    def assign(self, job_id, vehicle_id, assigned_by, driver_id=None, notes=None) -> Dict[str, Any]:
        return self.assignments.assign_vehicle(job_id, vehicle_id, assigned_by, driver_id=driver_id, notes=notes)

    def reassign(self, job_id, new_vehicle_id, assigned_by, driver_id=None, notes=None) -> Dict[str, Any]:
        return self.assignments.reassign_vehicle(job_id, new_vehicle_id, assigned_by, driver_id=driver_id, notes=notes)

    def unassign(self, job_id, changed_by) -> Dict[str, Any]:
        result = self.assignments.unassign_vehicle(job_id, changed_by)
        return {'message': result['message'], 'job': job_summary(result['job'])}

    def get_assignment_details(self, job_id) -> Optional[Dict[str, Any]]:
        return self.assignments.get_assignment_details(job_id)

    def check_conflict(self, vehicle_id, scheduled_date, start, end, exclude_job_id=None) -> Dict[str, Any]:
        """
        Advisory availability check for pre-flight UI validation.

        Not authoritative: assign() re-checks under lock.
        """
        result = self.checker.check_availability(
            vehicle_id,
            parse_date(scheduled_date, 'scheduled_date'),
            parse_time(start, 'scheduled_time_start'),
            parse_time(end, 'scheduled_time_end'),
            exclude_job_id=exclude_job_id,
        )
        return result.to_dict()

    def find_available_vehicles(self, scheduled_date, start, end) -> List[Dict[str, Any]]:
        vehicles = self.checker.find_available_vehicles(
            parse_date(scheduled_date, 'scheduled_date'),
            parse_time(start, 'scheduled_time_start'),
            parse_time(end, 'scheduled_time_end'),
        )
        return [v.to_dict(include_audit_fields=False) for v in vehicles]

    def get_vehicle_schedule(self, vehicle_id, scheduled_date) -> Dict[str, Any]:
        schedule = self.checker.get_vehicle_schedule(vehicle_id, parse_date(scheduled_date, 'scheduled_date'))
        return {
            'vehicle_id': schedule['vehicle_id'],
            'vehicle_name': schedule['vehicle_name'],
            'date': schedule['date'].isoformat(),
            'occupied_slots': [job_summary(j) for j in schedule['occupied_slots']],
            'available_gaps': [
                {'start': gap['start'].isoformat(), 'end': gap['end'].isoformat()}
                for gap in schedule['available_gaps']
            ],
            'total_jobs': schedule['total_jobs'],
        }

    def get_assignments_by_date_range(self, start_date, end_date, vehicle_id=None) -> List[Dict[str, Any]]:
        return self.assignments.get_assignments_by_date_range(
            parse_date(start_date, 'start_date'),
            parse_date(end_date, 'end_date'),
            vehicle_id=vehicle_id,
        )

    def update_status(self, job_id, new_status, changed_by, reason=None) -> Dict[str, Any]:
        job, change = self.statuses.update_status(job_id, new_status, changed_by, reason)
        return {
            'job': job_summary(job),
            'status_change': status_change_view(change) if change else None,
        }

    def reopen(self, job_id, changed_by, reason=None) -> Dict[str, Any]:
        job, change = self.statuses.reopen(job_id, changed_by, reason)
        return {
            'job': job_summary(job),
            'status_change': status_change_view(change) if change else None,
        }

    def get_allowed_transitions(self, job_id) -> Dict[str, Any]:
        allowed = self.statuses.get_allowed_transitions(job_id)
        return {
            'job_id': job_id,
            'allowed_transitions': [s.value for s in allowed],
            'descriptions': {s.value: JobStateMachine.STATUS_DESCRIPTIONS[s] for s in allowed},
        }

    def validate_status_update(self, job_id, new_status) -> Dict[str, Any]:
        errors = self.statuses.validate_workflow(job_id, new_status)
        return {'valid': not errors, 'errors': errors}

    def get_status_history(self, job_id, limit=None) -> List[Dict[str, Any]]:
        return [status_change_view(c) for c in self.statuses.get_status_history(job_id, limit)]

    def get_recent_status_changes(self, limit=50, status=None, days=None) -> List[Dict[str, Any]]:
        changes = self.statuses.get_recent_status_changes(limit=limit, status=status, days=days)
        return [status_change_view(c, include_job=True) for c in changes]
