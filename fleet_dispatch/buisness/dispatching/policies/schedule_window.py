"""
Schedule Window Policy

Validates requested booking windows before any conflict query runs.
"""

from datetime import date, time
from typing import Callable, Optional
from fleet_dispatch.buisness.dispatching.errors import ValidationError


class ScheduleWindowPolicy:
    """
    Rules:
    1. start and end are both given and start < end (half-open [start, end))
    2. date is not earlier than the caller's reference "today"
    """

    @classmethod
    def check(
        cls,
        scheduled_date: date,
        start: time,
        end: time,
        today: Optional[Callable[[], date]] = None
    ) -> None:
        """
        Raises:
            ValidationError: If the window is malformed or lies in the past
        """
        cls.check_order(start, end)

        if scheduled_date is None:
            raise ValidationError("Scheduled date is required")

        reference = (today or date.today)()
        if scheduled_date < reference:
            raise ValidationError(
                f"Cannot schedule jobs in the past ({scheduled_date.isoformat()} is before {reference.isoformat()})",
                scheduled_date=scheduled_date.isoformat(),
            )

    @staticmethod
    def check_order(start: time, end: time) -> None:
        if start is None or end is None:
            raise ValidationError("Start and end time are required")
        if not start < end:
            raise ValidationError(
                f"End time must be after start time ({start.isoformat()} - {end.isoformat()})",
                start=start.isoformat(),
                end=end.isoformat(),
            )
