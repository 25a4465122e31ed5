"""
Vehicle Dispatchability Policy

Validates that a vehicle exists and is in service before it is booked.
"""

from fleet_dispatch.data.core.vehicle import Vehicle
from fleet_dispatch.buisness.dispatching.errors import NotFoundError, VehicleInactiveError


class VehicleDispatchabilityPolicy:
    """
    A vehicle can take bookings only while ``is_active`` is true.

    ``lock=True`` loads the row with SELECT ... FOR UPDATE. Every writer that
    books a vehicle takes this lock first, so concurrent bookings of the same
    vehicle are serialised for the rest of their transaction.
    """

    @classmethod
    def load(cls, vehicle_id: int, lock: bool = False) -> Vehicle:
        """
        Load a dispatchable vehicle.

        Raises:
            NotFoundError: If the vehicle does not exist
            VehicleInactiveError: If the vehicle is out of service
        """
        query = Vehicle.query.filter(Vehicle.id == vehicle_id)
        if lock:
            query = query.with_for_update().populate_existing()
        vehicle = query.first()

        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)

        if not vehicle.is_active:
            raise VehicleInactiveError(
                f'Vehicle "{vehicle.vehicle_name}" ({vehicle.license_plate}) is currently inactive. '
                f'This usually means the vehicle is in maintenance or out of service.',
                vehicle_id=vehicle.id,
            )
        return vehicle
