"""
Leave day counting
"""
from datetime import date
from decimal import Decimal

from leaveflow.core.exceptions import InvalidRange
from leaveflow.models.leave import LeaveSession

HALF_DAY = Decimal("0.5")


def calculate_leave_days(start_date: date, end_date: date, session: LeaveSession = LeaveSession.FULL_DAY) -> Decimal:
    """
    Count leave days for an inclusive date range.

    - FULL_DAY: every calendar day from start to end counts as 1.
    - MORNING / AFTERNOON on a single day counts as 0.5.
    - A half-day session over more than one day is counted as full days.

    Raises:
        InvalidRange: end_date before start_date
    """
    if end_date < start_date:
        raise InvalidRange(
            "end_date cannot be before start_date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    total = (end_date - start_date).days + 1
    if session != LeaveSession.FULL_DAY and total == 1:
        return HALF_DAY
    return Decimal(total)
