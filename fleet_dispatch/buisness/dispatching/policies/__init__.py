"""
Policy classes for dispatch business rules

Policies are composable validation rules that enforce business invariants.
They raise domain exceptions when violations are detected.
"""

from fleet_dispatch.buisness.dispatching.policies.schedule_window import ScheduleWindowPolicy
from fleet_dispatch.buisness.dispatching.policies.vehicle_dispatchability import VehicleDispatchabilityPolicy
from fleet_dispatch.buisness.dispatching.policies.double_booking import DoubleBookingSpecification, ConflictSummary

__all__ = [
    'ScheduleWindowPolicy',
    'VehicleDispatchabilityPolicy',
    'DoubleBookingSpecification',
    'ConflictSummary',
]
