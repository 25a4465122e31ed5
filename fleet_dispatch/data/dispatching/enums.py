"""
Closed value sets for the dispatching domain.

Stored in the database as their string values (see ``enum_column``).
"""

from enum import Enum
from fleet_dispatch import db


class JobStatus(str, Enum):
    PENDING = 'pending'
    ASSIGNED = 'assigned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class JobType(str, Enum):
    INSTALLATION = 'installation'
    DELIVERY = 'delivery'
    MAINTENANCE = 'maintenance'


class JobPriority(str, Enum):
    LOW = 'low'
    NORMAL = 'normal'
    HIGH = 'high'
    URGENT = 'urgent'


class VehicleType(str, Enum):
    VAN = 'van'
    TRUCK = 'truck'
    CAR = 'car'


class UserRole(str, Enum):
    ADMIN = 'admin'
    DISPATCHER = 'dispatcher'
    DRIVER = 'driver'


# Statuses whose assignments no longer occupy a vehicle
INACTIVE_JOB_STATUSES = (JobStatus.COMPLETED, JobStatus.CANCELLED)


def enum_column(enum_cls, name):
    """Column type that persists enum *values* ('in_progress') rather than member names."""
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
