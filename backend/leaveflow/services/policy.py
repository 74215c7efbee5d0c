"""Fixed leave policy: thresholds, deadlines and the two day-counting rules.

Business-day counts drive balance deductions; calendar-day spans drive
dual approval and document gating. The two are deliberately separate.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

from leaveflow.models.enums import LeaveType

# Delegation engine hop cap (per request, across all escalations).
MAX_ESCALATIONS = 5

# Stale-approval timeout before the sweep escalates.
APPROVAL_TIMEOUT = timedelta(hours=48)

# Calendar-day span above which HR must also approve.
DUAL_APPROVAL_THRESHOLD_DAYS = 3

# Sick leave of at least this many calendar days needs a medical document.
SICK_DOCUMENT_MIN_DAYS = 3
DOCUMENT_DEADLINE = timedelta(days=3)
FIRST_REMINDER_HOURS = 24
URGENT_REMINDER_HOURS = 12
DOCUMENT_AUTO_REJECT_REASON = "Auto-rejected: medical document not uploaded within deadline (3 days)"

# Share of a department that may be on leave on any one day.
TEAM_CAPACITY_RATIO = 0.3

_ONE_DAY = timedelta(days=1)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY


def count_business_days(start: date, end: date) -> int:
    """Weekdays between start and end inclusive."""
    return sum(1 for d in iter_dates(start, end) if d.weekday() < 5)


def calendar_day_span(start: date, end: date) -> int:
    """Calendar days between start and end inclusive."""
    return (end - start).days + 1


def requires_dual_approval(start: date, end: date) -> bool:
    return calendar_day_span(start, end) > DUAL_APPROVAL_THRESHOLD_DAYS


def requires_document(leave_type: LeaveType, start: date, end: date) -> bool:
    return leave_type == LeaveType.SICK and calendar_day_span(start, end) >= SICK_DOCUMENT_MIN_DAYS
