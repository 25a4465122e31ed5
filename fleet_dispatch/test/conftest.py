"""
Pytest configuration and fixtures for the dispatching domain tests
"""
import itertools
from datetime import date, time

import pytest
from fleet_dispatch import create_app
from fleet_dispatch import db as _db
from fleet_dispatch.data.core.user import User
from fleet_dispatch.data.core.vehicle import Vehicle
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.enums import JobPriority, JobStatus, JobType, UserRole, VehicleType

FIXED_TODAY = date(2024, 2, 20)
SCENARIO_DATE = date(2024, 2, 26)


@pytest.fixture(scope='function')
def app():
    """Create Flask application over an in-memory database"""
    app = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'TESTING': True,
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def today():
    """Reference clock pinned to a date before every scenario"""
    return lambda: FIXED_TODAY


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make_user(username=None, full_name=None, role=UserRole.DISPATCHER):
        n = next(counter)
        user = User(
            username=username or f'user{n}',
            full_name=full_name,
            email=f'{username or f"user{n}"}@example.com',
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def dispatcher(make_user):
    return make_user('dispatcher', 'Dana Dispatcher')


@pytest.fixture
def make_vehicle(db):
    counter = itertools.count(1)

    def _make_vehicle(name=None, is_active=True, vehicle_type=VehicleType.VAN):
        n = next(counter)
        vehicle = Vehicle(
            vehicle_name=name or f'Van {n}',
            license_plate=f'TST-{n:03d}',
            vehicle_type=vehicle_type,
            is_active=is_active,
        )
        db.session.add(vehicle)
        db.session.commit()
        return vehicle

    return _make_vehicle


@pytest.fixture
def make_job(db):
    """Insert a job directly, bypassing creation rules, in any status"""
    counter = itertools.count(1)

    def _make_job(start='09:00:00', end='12:00:00', scheduled_date=SCENARIO_DATE,
                  status=JobStatus.PENDING, customer_name=None, job_type=JobType.DELIVERY):
        n = next(counter)
        job = Job(
            job_number=f'JOB-2024-{n:04d}',
            job_type=job_type,
            priority=JobPriority.NORMAL,
            customer_name=customer_name or f'Customer {n}',
            scheduled_date=scheduled_date,
            scheduled_time_start=time.fromisoformat(start),
            scheduled_time_end=time.fromisoformat(end),
            current_status=status,
        )
        db.session.add(job)
        db.session.commit()
        return job

    return _make_job
