"""Cutoff and payroll period date arithmetic."""
import calendar
from datetime import date
from typing import Tuple

CUTOFF_PERIOD = {"1st": "1st_half", "2nd": "2nd_half"}
PERIOD_CUTOFF = {period: cutoff for cutoff, period in CUTOFF_PERIOD.items()}


def cutoff_range(cutoff: str, month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day covered by a cutoff.

    The 1st cutoff spans days 1-15; the 2nd runs from the 16th to month end.
    """

    if cutoff == "1st":
        return date(year, month, 1), date(year, month, 15)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 16), date(year, month, last_day)


def period_range(period_type: str, month: int, year: int) -> Tuple[date, date]:
    return cutoff_range(PERIOD_CUTOFF[period_type], month, year)


def cutoff_date(cutoff: str, month: int, year: int) -> date:
    """Date stamped on records created for a cutoff (the 15th or the 28th)."""

    return date(year, month, 15 if cutoff == "1st" else 28)


def period_for(cutoff: str, on: date) -> Tuple[int, int, str]:
    """(year, month, period_type) of the payroll period a record belongs to."""

    return on.year, on.month, CUTOFF_PERIOD[cutoff]
