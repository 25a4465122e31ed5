from fleet_dispatch.services.dispatching.scheduling_service import SchedulingService

__all__ = ['SchedulingService']
