"""
Request Statistics
Dashboard numbers computed from a list of requests
"""
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from travel_desk.models.booking import CamelModel
from travel_desk.models.request import RequestRecord, RequestStatus


APPROVED_STATUSES = (RequestStatus.BOOKED, RequestStatus.PROCESSING)


class AggregateStats(CamelModel):
    total: int = 0
    total_all_time: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    percent_change: float = 0.0


class SystemOverview(CamelModel):
    total_volume: float = 0.0
    unique_users: int = 0
    total_requests: int = 0
    pending_actions: int = 0


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Start of the previous month and start of the current month"""
    current = datetime(now.year, now.month, 1)
    if now.month == 1:
        previous = datetime(now.year - 1, 12, 1)
    else:
        previous = datetime(now.year, now.month - 1, 1)
    return previous, current


def percent_change(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0
    return round((current - previous) / previous * 100, 2)


def compute_stats(records: Iterable[RequestRecord], now: Optional[datetime] = None) -> AggregateStats:
    """Local equivalent of the store's aggregate stats"""
    records = list(records)
    previous_start, current_start = month_bounds(now or datetime.utcnow())

    this_month = sum(1 for r in records if r.submitted_date >= current_start)
    last_month = sum(1 for r in records if previous_start <= r.submitted_date < current_start)

    return AggregateStats(
        total=this_month,
        total_all_time=len(records),
        approved=sum(1 for r in records if r.status in APPROVED_STATUSES),
        pending=sum(1 for r in records if r.status.is_pending),
        rejected=sum(1 for r in records if r.status == RequestStatus.REJECTED),
        percent_change=percent_change(this_month, last_month),
    )


def system_overview(records: Iterable[RequestRecord]) -> SystemOverview:
    records = list(records)
    return SystemOverview(
        total_volume=round(sum(r.amount or 0 for r in records), 2),
        unique_users=len({r.employee_name for r in records}),
        total_requests=len(records),
        pending_actions=sum(1 for r in records if r.status.is_pending),
    )


def status_counts(records: Iterable[RequestRecord]) -> Dict[str, int]:
    counts = {status.value: 0 for status in RequestStatus}
    for record in records:
        counts[record.status.value] += 1
    return counts
