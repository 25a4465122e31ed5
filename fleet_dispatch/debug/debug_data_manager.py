#!/usr/bin/env python3
"""
Debug Data Manager
Central controller for debug data insertion

Handles:
- Loading debug data JSON files
- Checking if data is already present
- Orchestrating module-specific insertion functions
- Fail-fast error handling
"""

from pathlib import Path
import json
from fleet_dispatch import db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.debug.data_manager")

DEBUG_MODULES = ['dispatching']


def insert_debug_data(enabled=True, today=None):
    """
    Insert debug data for every module

    Args:
        enabled (bool): Whether to insert debug data (default: True)
        today (callable, optional): Reference clock for relative dates

    Returns:
        dict: Summary of inserted data per module

    Raises:
        RuntimeError: If critical data (system user) is missing
        Exception: If any debug data insertion fails (fail-fast)
    """
    if not enabled:
        logger.info("Debug data insertion is disabled")
        return {}

    from fleet_dispatch.data.core.user import User
    system_user = User.query.filter_by(username='system').first()
    if not system_user:
        logger.error("System user not found - cannot insert debug data without system user")
        raise RuntimeError("System user not found - critical data must be inserted first")

    summary = {}
    for module_name in DEBUG_MODULES:
        try:
            debug_data = _load_debug_data_file(module_name)
            if not debug_data:
                logger.info(f"No debug data file found for {module_name}, skipping")
                summary[module_name] = {'status': 'skipped', 'reason': 'file_not_found'}
                continue

            if _check_debug_data_present(module_name, debug_data):
                logger.info(f"Debug data for {module_name} already present, skipping")
                summary[module_name] = {'status': 'skipped', 'reason': 'data_present'}
                continue

            logger.info(f"Inserting debug data for {module_name}...")
            _insert_module_debug_data(module_name, debug_data, system_user.id, today)
            summary[module_name] = {'status': 'inserted'}

        except Exception as e:
            logger.error(f"Failed to insert debug data for {module_name}: {e}")
            db.session.rollback()
            raise

    logger.info("Debug data insertion completed successfully")
    return summary


def _load_debug_data_file(module_name):
    debug_file = Path(__file__).parent / 'data' / f'{module_name}.json'

    if not debug_file.exists():
        return None

    try:
        with open(debug_file, 'r') as f:
            data = json.load(f)
        logger.debug(f"Loaded debug data file: {debug_file}")
        return data
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {debug_file}: {e}")
        raise


def _check_debug_data_present(module_name, debug_data):
    """Debug vehicles are keyed by license plate; any match means the module was seeded."""
    if module_name == 'dispatching':
        from fleet_dispatch.data.core.vehicle import Vehicle

        for vehicle_key, vehicle_data in debug_data.get('Dispatching', {}).get('Vehicles', {}).items():
            if Vehicle.query.filter_by(license_plate=vehicle_data['license_plate']).first():
                return True

    return False


def _insert_module_debug_data(module_name, debug_data, system_user_id, today=None):
    if module_name == 'dispatching':
        from fleet_dispatch.debug.add_dispatching_debugging_data import insert_dispatching_debug_data
        insert_dispatching_debug_data(debug_data, system_user_id, today=today)
    else:
        raise ValueError(f"Unknown module: {module_name}")
