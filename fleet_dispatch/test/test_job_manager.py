"""
Tests for job creation, rescheduling and guarded deletion.
"""

from datetime import date, time

import pytest
from fleet_dispatch.data.dispatching.enums import JobPriority, JobStatus, JobType
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.errors import (
    JobDeletionBlockedError,
    NotFoundError,
    TimeConflictError,
    ValidationError,
)
from fleet_dispatch.buisness.dispatching.job_manager import JobManager
from fleet_dispatch.buisness.dispatching.status_manager import JobStatusManager
from fleet_dispatch.test.conftest import SCENARIO_DATE


@pytest.fixture
def jobs(today):
    return JobManager(today=today)


def create(jobs, dispatcher, start=time(9), end=time(12), scheduled_date=SCENARIO_DATE, **kwargs):
    return jobs.create_job(
        created_by=dispatcher.id,
        customer_name=kwargs.pop('customer_name', 'Acme'),
        job_type=kwargs.pop('job_type', 'delivery'),
        scheduled_date=scheduled_date,
        scheduled_time_start=start,
        scheduled_time_end=end,
        **kwargs
    )


def test_create_job_numbers_sequentially(jobs, dispatcher):
    first = create(jobs, dispatcher)
    second = create(jobs, dispatcher, priority='urgent', job_type='installation')

    assert first.job_number == 'JOB-2024-0001'
    assert second.job_number == 'JOB-2024-0002'
    assert first.current_status == JobStatus.PENDING
    assert first.estimated_duration_minutes == 180
    assert second.priority == JobPriority.URGENT
    assert second.job_type == JobType.INSTALLATION
    assert first.created_by_id == dispatcher.id


def test_job_numbers_restart_each_year(db, dispatcher):
    create(JobManager(today=lambda: date(2024, 12, 30)), dispatcher, scheduled_date=date(2024, 12, 31))
    job = create(JobManager(today=lambda: date(2025, 1, 2)), dispatcher, scheduled_date=date(2025, 1, 3))
    assert job.job_number == 'JOB-2025-0001'


def test_job_numbers_order_numerically_past_four_digits(db, jobs, dispatcher, make_job):
    make_job()
    nines = make_job()
    ten_thousand = make_job()
    nines.job_number = 'JOB-2024-9999'
    ten_thousand.job_number = 'JOB-2024-10000'
    db.session.commit()

    assert jobs.next_job_number() == 'JOB-2024-10001'
    assert create(jobs, dispatcher).job_number == 'JOB-2024-10001'


def test_taken_job_number_is_retried(jobs, dispatcher, make_job, monkeypatch):
    make_job()
    proposals = iter(['JOB-2024-0001'])
    next_number = JobManager.next_job_number

    def stale_then_fresh(self):
        return next(proposals, None) or next_number(self)

    monkeypatch.setattr(JobManager, 'next_job_number', stale_then_fresh)

    job = create(jobs, dispatcher, customer_name='Late Co')

    assert job.job_number == 'JOB-2024-0002'
    assert Job.query.count() == 2


@pytest.mark.parametrize('kwargs', [
    {'job_type': 'towing'},
    {'priority': 'whenever'},
    {'customer_name': ''},
    {'start': time(12), 'end': time(9)},
    {'scheduled_date': date(2024, 2, 1)},
])
def test_create_job_validation(jobs, dispatcher, kwargs):
    with pytest.raises(ValidationError):
        create(jobs, dispatcher, **kwargs)
    assert Job.query.count() == 0


def test_reschedule_unassigned_job(jobs, dispatcher):
    job = create(jobs, dispatcher)

    job = jobs.reschedule_job(job.id, dispatcher.id, scheduled_time_start=time(13), scheduled_time_end=time(14))

    assert job.scheduled_time_start == time(13)
    assert job.estimated_duration_minutes == 60


def test_reschedule_assigned_job_rechecks_its_vehicle(db, jobs, dispatcher, make_vehicle, today):
    assignments = AssignmentManager(today=today)
    vehicle = make_vehicle()
    job = create(jobs, dispatcher, start=time(9), end=time(10))
    other = create(jobs, dispatcher, start=time(13), end=time(15))
    assignments.assign_vehicle(job.id, vehicle.id, dispatcher.id)
    assignments.assign_vehicle(other.id, vehicle.id, dispatcher.id)

    with pytest.raises(TimeConflictError):
        jobs.reschedule_job(job.id, dispatcher.id, scheduled_time_start=time(12), scheduled_time_end=time(14))

    assert db.session.get(Job, job.id).scheduled_time_start == time(9)

    # Moving within its own window never conflicts with itself
    moved = jobs.reschedule_job(job.id, dispatcher.id, scheduled_time_start=time(9, 30), scheduled_time_end=time(13))
    assert moved.scheduled_time_end == time(13)


def test_reschedule_refused_once_started(jobs, dispatcher, make_job):
    job = make_job(status=JobStatus.IN_PROGRESS)
    with pytest.raises(ValidationError):
        jobs.reschedule_job(job.id, dispatcher.id, scheduled_date=date(2024, 3, 1))


def test_delete_fresh_job(jobs, dispatcher):
    job_id = create(jobs, dispatcher).id
    jobs.delete_job(job_id)
    assert Job.query.count() == 0

    with pytest.raises(NotFoundError):
        jobs.delete_job(job_id)


def test_delete_blocked_by_assignment(jobs, dispatcher, make_vehicle, today):
    vehicle = make_vehicle()
    job = create(jobs, dispatcher)
    AssignmentManager(today=today).assign_vehicle(job.id, vehicle.id, dispatcher.id)

    with pytest.raises(JobDeletionBlockedError) as exc:
        jobs.delete_job(job.id)
    assert 'Cancel it instead' in exc.value.message


def test_delete_blocked_by_history(jobs, dispatcher):
    job = create(jobs, dispatcher)
    JobStatusManager().update_status(job.id, 'cancelled', dispatcher.id)

    with pytest.raises(JobDeletionBlockedError):
        jobs.delete_job(job.id)
    assert Job.query.count() == 1
