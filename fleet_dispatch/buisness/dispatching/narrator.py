"""
AssignmentNarrator - reason text for status history records

Separates audit narrative formatting from transition logic.
"""

from typing import Optional


class AssignmentNarrator:
    """Composes machine-generated reasons recorded on JobStatusChange rows."""

    @staticmethod
    def vehicle_assigned(vehicle) -> str:
        return f"Assigned to vehicle: {vehicle.vehicle_name} ({vehicle.license_plate})"

    @staticmethod
    def vehicle_reassigned(old_vehicle, new_vehicle) -> str:
        if old_vehicle is None:
            return AssignmentNarrator.vehicle_assigned(new_vehicle)
        return (
            f"Reassigned from {old_vehicle.vehicle_name} ({old_vehicle.license_plate}) "
            f"to {new_vehicle.vehicle_name} ({new_vehicle.license_plate})"
        )

    @staticmethod
    def vehicle_unassigned() -> str:
        return "Vehicle unassigned. Job returned to pending status."

    @staticmethod
    def job_reopened(released_vehicle=None, reason: Optional[str] = None) -> str:
        text = reason or "Job reopened"
        if released_vehicle is not None:
            text += f" | Released stale assignment on {released_vehicle.vehicle_name}"
        return text

    @staticmethod
    def unassigned_message(job) -> str:
        return f"Job {job.job_number} unassigned successfully. Status changed to pending."
