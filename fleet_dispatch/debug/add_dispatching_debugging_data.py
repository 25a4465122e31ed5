#!/usr/bin/env python3
"""
Dispatching Debug Data Insertion
Inserts debug users, vehicles, jobs and assignments

Jobs and assignments go through the domain managers so seeded data obeys the
same window, conflict and lifecycle rules as live data.
"""

from datetime import date, time, timedelta
from fleet_dispatch import db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.debug.dispatching")


def insert_dispatching_debug_data(debug_data, system_user_id, today=None):
    """
    Insert debug data for dispatching module

    Args:
        debug_data (dict): Debug data from JSON file
        system_user_id (int): System user ID for audit fields
        today (callable, optional): Reference clock for relative job dates

    Raises:
        Exception: If insertion fails (fail-fast)
    """
    if not debug_data:
        logger.info("No dispatching debug data to insert")
        return

    logger.info("Inserting dispatching debug data...")
    today = today or date.today

    try:
        dispatching_data = debug_data.get('Dispatching', {})

        if 'Users' in dispatching_data:
            _insert_dispatching_users(dispatching_data['Users'], system_user_id)

        if 'Vehicles' in dispatching_data:
            _insert_vehicles(dispatching_data['Vehicles'], system_user_id)

        db.session.commit()

        jobs = {}
        if 'Jobs' in dispatching_data:
            jobs = _insert_jobs(dispatching_data['Jobs'], system_user_id, today)

        if 'Assignments' in dispatching_data:
            _insert_assignments(dispatching_data['Assignments'], jobs, system_user_id, today)

        logger.info("Successfully inserted dispatching debug data")

    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert dispatching debug data: {e}")
        raise


def _insert_dispatching_users(users_data, system_user_id):
    """Insert dispatchers and drivers"""
    from fleet_dispatch.data.core.user import User

    for user_key, user_data in users_data.items():
        User.find_or_create_from_dict(
            user_data,
            user_id=system_user_id,
            lookup_fields=['username'],
            commit=False
        )
        logger.debug(f"Inserted dispatching user: {user_data.get('username')}")


def _insert_vehicles(vehicles_data, system_user_id):
    from fleet_dispatch.data.core.vehicle import Vehicle

    for vehicle_key, vehicle_data in vehicles_data.items():
        Vehicle.find_or_create_from_dict(
            vehicle_data,
            user_id=system_user_id,
            lookup_fields=['license_plate'],
            commit=False
        )
        logger.debug(f"Inserted vehicle: {vehicle_data.get('license_plate')}")


def _insert_jobs(jobs_data, system_user_id, today):
    """Create jobs relative to today; returns {json key: Job}"""
    from fleet_dispatch.buisness.dispatching.job_manager import JobManager

    manager = JobManager(today=today)
    jobs = {}
    for job_key, job_data in jobs_data.items():
        jobs[job_key] = manager.create_job(
            created_by=system_user_id,
            customer_name=job_data['customer_name'],
            job_type=job_data['job_type'],
            scheduled_date=today() + timedelta(days=job_data.get('days_from_today', 0)),
            scheduled_time_start=time.fromisoformat(job_data['scheduled_time_start']),
            scheduled_time_end=time.fromisoformat(job_data['scheduled_time_end']),
            priority=job_data.get('priority', 'normal'),
            customer_phone=job_data.get('customer_phone'),
            customer_address=job_data.get('customer_address'),
            description=job_data.get('description'),
        )
        logger.debug(f"Inserted job {jobs[job_key].job_number} ({job_key})")
    return jobs


def _insert_assignments(assignments_data, jobs, system_user_id, today):
    from fleet_dispatch.data.core.user import User
    from fleet_dispatch.data.core.vehicle import Vehicle
    from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager

    manager = AssignmentManager(today=today)
    for assignment_data in assignments_data:
        job = jobs[assignment_data['job']]
        vehicle = Vehicle.query.filter_by(license_plate=assignment_data['license_plate']).one()
        driver = None
        if assignment_data.get('driver_username'):
            driver = User.query.filter_by(username=assignment_data['driver_username']).one()

        manager.assign_vehicle(
            job.id,
            vehicle.id,
            system_user_id,
            driver_id=driver.id if driver else None,
            notes=assignment_data.get('notes'),
        )
        logger.debug(f"Assigned {vehicle.license_plate} to {job.job_number}")
