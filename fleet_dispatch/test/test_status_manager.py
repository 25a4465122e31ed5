"""
Tests for status updates, reopening and the append-only history.
"""

from datetime import datetime, timedelta

import pytest
from fleet_dispatch.data.dispatching.enums import JobStatus
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.data.dispatching.job_status_change import AppendOnlyViolation, JobStatusChange
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.errors import (
    InvalidTransitionError,
    MissingAssignmentError,
    NotFoundError,
    TimeConflictError,
    ValidationError,
)
from fleet_dispatch.buisness.dispatching.status_manager import JobStatusManager


@pytest.fixture
def statuses():
    return JobStatusManager()


@pytest.fixture
def assignments(today):
    return AssignmentManager(today=today)


def test_scenario_b_start_requires_assignment(db, statuses, assignments, dispatcher, make_vehicle, make_job):
    vehicle = make_vehicle()
    job = make_job()

    with pytest.raises(MissingAssignmentError):
        statuses.update_status(job.id, 'in_progress', dispatcher.id)
    assert db.session.get(Job, job.id).current_status == JobStatus.PENDING
    assert JobStatusChange.query.count() == 0

    assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)
    job, change = statuses.update_status(job.id, 'in_progress', dispatcher.id, reason='Driver on site')

    assert job.current_status == JobStatus.IN_PROGRESS
    assert change.reason == 'Driver on site'
    records = JobStatusChange.query.filter_by(job_id=job.id).order_by(JobStatusChange.id).all()
    assert [(r.old_status, r.new_status) for r in records] == [
        (JobStatus.PENDING, JobStatus.ASSIGNED),
        (JobStatus.ASSIGNED, JobStatus.IN_PROGRESS),
    ]


@pytest.mark.parametrize('target', ['pending', 'assigned', 'in_progress', 'cancelled'])
def test_scenario_c_completed_is_final(statuses, dispatcher, make_job, target):
    job = make_job(status=JobStatus.COMPLETED)

    with pytest.raises(InvalidTransitionError) as exc:
        statuses.update_status(job.id, target, dispatcher.id)
    assert exc.value.details['allowed'] == []


def test_same_status_update_is_a_silent_noop(statuses, dispatcher, make_job):
    job = make_job()

    job, change = statuses.update_status(job.id, 'pending', dispatcher.id)

    assert change is None
    assert job.current_status == JobStatus.PENDING
    assert JobStatusChange.query.count() == 0


def test_unknown_status_is_a_validation_error(statuses, dispatcher, make_job):
    job = make_job()
    with pytest.raises(ValidationError) as exc:
        statuses.update_status(job.id, 'on_hold', dispatcher.id)
    assert 'Valid statuses are' in exc.value.message


def test_missing_job(statuses, dispatcher):
    with pytest.raises(NotFoundError):
        statuses.update_status(404, 'cancelled', dispatcher.id)


def test_direct_update_cannot_assign(statuses, dispatcher, make_job):
    job = make_job()
    with pytest.raises(InvalidTransitionError):
        statuses.update_status(job.id, 'assigned', dispatcher.id)


def test_direct_update_cannot_unassign(statuses, assignments, dispatcher, make_vehicle, make_job):
    vehicle = make_vehicle()
    job = make_job()
    assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)

    with pytest.raises(InvalidTransitionError):
        statuses.update_status(job.id, 'pending', dispatcher.id)
    assert JobAssignment.query.filter_by(job_id=job.id).count() == 1


def test_reopen_releases_stale_assignment(db, statuses, assignments, dispatcher, make_vehicle, make_job):
    vehicle = make_vehicle()
    job = make_job('09:00:00', '12:00:00')
    rival = make_job('10:00:00', '11:00:00')
    assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)
    statuses.update_status(job.id, 'cancelled', dispatcher.id)

    # The cancelled job no longer blocks the window
    assignments.assign_vehicle(rival.id, vehicle.id, dispatcher.id)

    job, change = statuses.reopen(job.id, dispatcher.id, reason='Customer called back')

    assert job.current_status == JobStatus.PENDING
    assert JobAssignment.query.filter_by(job_id=job.id).count() == 0
    assert change.reason.startswith('Customer called back')
    assert 'Released stale assignment' in change.reason

    # Reopened job must be re-assigned through the conflict check
    with pytest.raises(TimeConflictError):
        assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)


def test_status_update_from_cancelled_also_reopens(statuses, dispatcher, make_job):
    job = make_job(status=JobStatus.CANCELLED)
    job, change = statuses.update_status(job.id, 'pending', dispatcher.id)
    assert change.old_status == JobStatus.CANCELLED
    assert job.current_status == JobStatus.PENDING


def test_allowed_transitions(statuses, make_job):
    job = make_job(status=JobStatus.IN_PROGRESS)
    assert statuses.get_allowed_transitions(job.id) == [JobStatus.COMPLETED, JobStatus.CANCELLED]


def test_allowed_transitions_are_all_accepted(statuses, assignments, dispatcher, make_vehicle, make_job):
    vehicle = make_vehicle()
    first = make_job()
    assert statuses.get_allowed_transitions(first.id) == [JobStatus.CANCELLED]

    assignments.assign_vehicle(first.id, vehicle.id, dispatcher.id)
    allowed = statuses.get_allowed_transitions(first.id)
    assert allowed == [JobStatus.IN_PROGRESS, JobStatus.CANCELLED]

    for target in allowed:
        job = make_job('14:00:00', '15:00:00')
        assignments.assign_vehicle(job.id, make_vehicle().id, dispatcher.id)
        job, change = statuses.update_status(job.id, target, dispatcher.id)
        assert change.new_status == target

    with pytest.raises(InvalidTransitionError) as exc:
        statuses.update_status(first.id, 'completed', dispatcher.id)
    assert exc.value.details['allowed'] == ['in_progress', 'cancelled']


def test_validate_workflow(statuses, make_job):
    job = make_job()
    errors = statuses.validate_workflow(job.id, 'in_progress')
    assert any('vehicle assignment' in e for e in errors)
    assert statuses.validate_workflow(job.id, 'cancelled') == []


def test_history_is_newest_first(statuses, assignments, dispatcher, make_vehicle, make_job):
    vehicle = make_vehicle()
    job = make_job()
    assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)
    statuses.update_status(job.id, 'in_progress', dispatcher.id)
    statuses.update_status(job.id, 'completed', dispatcher.id)

    records = statuses.get_status_history(job.id)
    assert [r.new_status for r in records] == [JobStatus.COMPLETED, JobStatus.IN_PROGRESS, JobStatus.ASSIGNED]
    assert len(statuses.get_status_history(job.id, limit=1)) == 1
    assert statuses.get_status_history(job.id, limit=0) == []

    with pytest.raises(NotFoundError):
        statuses.get_status_history(999)


def test_recent_status_changes_filters(db, statuses, dispatcher, make_job):
    first = make_job()
    second = make_job()
    statuses.update_status(first.id, 'cancelled', dispatcher.id)
    statuses.update_status(second.id, 'cancelled', dispatcher.id)
    statuses.update_status(second.id, 'pending', dispatcher.id)

    old = JobStatusChange(
        job_id=first.id,
        old_status=JobStatus.PENDING,
        new_status=JobStatus.CANCELLED,
        changed_by_id=dispatcher.id,
        changed_at=datetime.utcnow() - timedelta(days=30),
    )
    db.session.add(old)
    db.session.commit()

    assert len(statuses.get_recent_status_changes()) == 4
    assert len(statuses.get_recent_status_changes(limit=2)) == 2
    assert len(statuses.get_recent_status_changes(status='cancelled')) == 3
    assert len(statuses.get_recent_status_changes(status='cancelled', days=7)) == 2
    assert statuses.get_recent_status_changes()[0].new_status == JobStatus.PENDING


def test_history_rows_cannot_be_updated(db, statuses, dispatcher, make_job):
    job = make_job()
    _, change = statuses.update_status(job.id, 'cancelled', dispatcher.id)

    change = db.session.get(JobStatusChange, change.id)
    change.reason = 'rewritten'
    with pytest.raises(AppendOnlyViolation):
        db.session.flush()
    db.session.rollback()


def test_history_rows_cannot_be_deleted(db, statuses, dispatcher, make_job):
    job = make_job()
    _, change = statuses.update_status(job.id, 'cancelled', dispatcher.id)

    db.session.delete(db.session.get(JobStatusChange, change.id))
    with pytest.raises(AppendOnlyViolation):
        db.session.flush()
    db.session.rollback()
