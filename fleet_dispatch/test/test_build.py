"""
Tests for database build, critical data and debug seeding.
"""

from datetime import date

import pytest
from fleet_dispatch.build import build_database, insert_critical_data, verify_critical_data
from fleet_dispatch.data.core.user import User
from fleet_dispatch.data.core.vehicle import Vehicle
from fleet_dispatch.data.dispatching.enums import JobStatus, UserRole
from fleet_dispatch.data.dispatching.job import Job
from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
from fleet_dispatch.debug.debug_data_manager import insert_debug_data


def test_critical_data_inserted_once(db):
    assert not verify_critical_data()

    insert_critical_data()
    insert_critical_data()

    assert verify_critical_data()
    assert User.query.count() == 2
    system = User.query.filter_by(username='system').one()
    assert system.id == 0
    assert system.is_system
    assert system.role == UserRole.ADMIN


def test_missing_critical_file(db, tmp_path):
    with pytest.raises(FileNotFoundError):
        insert_critical_data(tmp_path / 'missing.json')


def test_debug_data_requires_system_user(db):
    with pytest.raises(RuntimeError):
        insert_debug_data()


def test_debug_data_seeds_through_domain_rules(db, today):
    insert_critical_data()

    summary = insert_debug_data(today=today)

    assert summary == {'dispatching': {'status': 'inserted'}}
    assert Vehicle.query.count() == 3
    assert Job.query.count() == 3
    assert JobAssignment.query.count() == 2
    assert Job.query.filter_by(current_status=JobStatus.ASSIGNED).count() == 2
    assert Job.query.order_by(Job.id).first().scheduled_date == date(2024, 2, 21)

    again = insert_debug_data(today=today)
    assert again == {'dispatching': {'status': 'skipped', 'reason': 'data_present'}}


def test_build_database_without_debug_data(app):
    build_database(enable_debug_data=False, app=app)
    assert verify_critical_data()
    assert Vehicle.query.count() == 0


def test_disabled_debug_data_is_a_noop(db):
    assert insert_debug_data(enabled=False) == {}
