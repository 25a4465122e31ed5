from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event
import os
from fleet_dispatch.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def serialize_sqlite_writes(engine):
    """
    Make every SQLite transaction take the database write lock at BEGIN.

    pysqlite defers BEGIN until the first write and the dialect drops
    FOR UPDATE, so a read-check-then-insert would run unlocked. With
    BEGIN IMMEDIATE a second writer waits on the busy timeout until the
    first one commits, then sees its rows.
    """
    @event.listens_for(engine, "connect")
    def disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_app(test_config=None):
    from pathlib import Path

    app = Flask(__name__)

    # Get singleton logger
    logger = get_logger("fleet_dispatch")
    logger.info("Initializing Flask application")

    # Prefer an explicit DATABASE_URL env var; otherwise keep the SQLite
    # database inside the project's `instance/` directory.
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'fleet_dispatch.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    if test_config:
        app.config.update(test_config)

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            serialize_sqlite_writes(db.engine)
            logger.debug("SQLite transactions begin immediate")

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from fleet_dispatch.data.core.user import User
    from fleet_dispatch.data.core.vehicle import Vehicle
    from fleet_dispatch.data.dispatching.job import Job
    from fleet_dispatch.data.dispatching.job_assignment import JobAssignment
    from fleet_dispatch.data.dispatching.job_status_change import JobStatusChange

    logger.debug("Models imported and registered")
    logger.info("Flask application initialization complete")

    return app
