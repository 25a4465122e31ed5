#!/usr/bin/env python3
"""
Database build orchestrator for Fleet Dispatch
Creates tables, inserts critical data and optionally seeds debug data
"""

from pathlib import Path
import json
from fleet_dispatch import create_app, db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.build")

CRITICAL_DATA_FILE = Path(__file__).parent / 'data' / 'core' / 'build_data_critical.json'


def verify_critical_data():
    """
    Verify that critical data is present in the database

    Returns:
        bool: True if all critical data is present, False otherwise
    """
    from fleet_dispatch.data.core.user import User

    system_user = User.query.filter_by(id=0, username='system').first()
    if not system_user:
        logger.warning("System user (id=0) not found")
        return False

    admin_user = User.query.filter_by(id=1, username='admin').first()
    if not admin_user:
        logger.warning("Admin user (id=1) not found")
        return False

    logger.info("Critical data verification passed")
    return True


def insert_critical_data(critical_file=CRITICAL_DATA_FILE):
    """
    Insert critical data that must always be present

    Raises:
        FileNotFoundError: If critical data file not found
        RuntimeError: If insertion completes but verification still fails
    """
    critical_file = Path(critical_file)
    if not critical_file.exists():
        error_msg = f"Critical data file not found: {critical_file}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    if verify_critical_data():
        logger.info("Critical data already present, skipping insertion")
        return

    logger.info(f"Loading critical data from {critical_file.name}...")
    with open(critical_file, 'r') as f:
        critical_data = json.load(f)

    from fleet_dispatch.data.core.user import User

    try:
        for user_key, user_data in critical_data.get('Essential', {}).get('Users', {}).items():
            User.find_or_create_from_dict(user_data, lookup_fields=['username'], commit=False)
            logger.info(f"Inserted essential user: {user_data.get('username')}")

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Critical data insertion failed: {e}")
        raise

    if not verify_critical_data():
        error_msg = "Critical data insertion completed but verification failed"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    logger.info("Successfully inserted critical data")


def build_models():
    """Create all tables for the registered models"""
    db.create_all()
    logger.info("All database tables created")


def build_database(enable_debug_data=True, app=None):
    """
    Build the database

    Args:
        enable_debug_data (bool): Whether to insert debug data (default: True)
                                  Critical data is inserted regardless
        app: Flask app to build against (default: a new create_app())
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (debug data: {enable_debug_data})")
        build_models()

        try:
            insert_critical_data()
        except Exception as e:
            logger.error(f"Application cannot continue without critical data. Stopping build: {e}")
            raise

        if enable_debug_data:
            from fleet_dispatch.debug.debug_data_manager import insert_debug_data
            insert_debug_data(enabled=True)

        logger.info("Database build completed successfully")
