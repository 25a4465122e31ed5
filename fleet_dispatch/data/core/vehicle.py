from fleet_dispatch import db
from fleet_dispatch.data.core.user_created_base import UserCreatedBase
from fleet_dispatch.data.dispatching.enums import VehicleType, enum_column


class Vehicle(UserCreatedBase):
    __tablename__ = 'vehicles'

    vehicle_name = db.Column(db.String(100), nullable=False)
    license_plate = db.Column(db.String(20), unique=True, nullable=False)
    vehicle_type = db.Column(enum_column(VehicleType, 'vehicle_type'), nullable=False, default=VehicleType.VAN)
    capacity_kg = db.Column(db.Float, nullable=True)

    # False means out of service (maintenance, retired)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<Vehicle {self.vehicle_name} ({self.license_plate})>'
