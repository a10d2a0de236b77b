"""
Request Views
Timeline and summary derived from a request's current state
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List

from travel_desk.core import booking_costs
from travel_desk.core.itinerary import Itinerary, TripType, parse_itinerary
from travel_desk.core.records import parse_iso_date
from travel_desk.core.exceptions import ValidationError
from travel_desk.core.transitions import Actor, allowed_transitions
from travel_desk.models.booking import CamelModel, CostBreakdown
from travel_desk.models.request import RequestRecord, RequestStatus


class StepState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class TimelineStep(CamelModel):
    key: str
    label: str
    state: StepState
    detail: Optional[str] = None
    at: Optional[datetime] = None


# (key, label, statuses in which this step is the current one)
_STAGES = (
    ("submitted", "Submitted", ()),
    ("manager", "Manager Approval", (RequestStatus.PENDING_MANAGER,)),
    ("admin", "Admin Approval", (RequestStatus.PENDING_ADMIN,)),
    ("travel_desk", "Travel Desk", (RequestStatus.PROCESSING, RequestStatus.ACTION_REQUIRED)),
    ("booked", "Booked", (RequestStatus.BOOKED,)),
)


def _stage_index(status: RequestStatus) -> int:
    for i, (_, _, statuses) in enumerate(_STAGES):
        if status in statuses:
            return i
    return len(_STAGES)


def _left_stage_at(record: RequestRecord, index: int) -> Optional[datetime]:
    """When the request last moved out of stage ``index``"""
    statuses = _STAGES[index][2]
    for change in reversed(record.history):
        if change.from_status in statuses and change.to_status not in statuses:
            return change.at
    return None


def _rejected_stage(record: RequestRecord) -> int:
    for change in reversed(record.history):
        if change.to_status == RequestStatus.REJECTED:
            return _stage_index(change.from_status)
    # Legacy record without history: assume the first approval stage
    return 1


def status_timeline(record: RequestRecord) -> List[TimelineStep]:
    """Approval progress of a request, one step per stage"""
    if record.status == RequestStatus.REJECTED:
        stopped_at, stop_state = _rejected_stage(record), StepState.REJECTED
    elif record.status == RequestStatus.BOOKED:
        stopped_at, stop_state = len(_STAGES), StepState.COMPLETED
    else:
        stopped_at, stop_state = _stage_index(record.status), StepState.CURRENT

    steps = []
    for i, (key, label, _) in enumerate(_STAGES):
        detail = None
        at = None
        if i == 0:
            state, at = StepState.COMPLETED, record.submitted_date
        elif i < stopped_at:
            state, at = StepState.COMPLETED, _left_stage_at(record, i)
        elif i == stopped_at:
            state = stop_state
            if state == StepState.REJECTED:
                detail = record.rejection_reason
                at = record.updated_at
            elif record.status == RequestStatus.ACTION_REQUIRED:
                detail = "Awaiting employee response"
        else:
            state = StepState.SKIPPED if record.status == RequestStatus.REJECTED else StepState.UPCOMING

        if key == "booked" and record.status == RequestStatus.BOOKED:
            at = record.updated_at
        steps.append(TimelineStep(key=key, label=label, state=state, detail=detail, at=at))
    return steps


class RequestSummary(CamelModel):
    id: Optional[str]
    status: RequestStatus
    route: str
    trip_type: TripType
    duration_days: Optional[int] = None
    nights: Optional[int] = None
    amount: float
    next_actor: Optional[Actor] = None
    costs: Optional[CostBreakdown] = None


def _duration(record: RequestRecord) -> Optional[int]:
    try:
        start = parse_iso_date(record.start_date, "startDate")
        end = parse_iso_date(record.end_date, "endDate")
    except ValidationError:
        return None
    return (end - start).days + 1


def summarize(record: RequestRecord, itinerary: Optional[Itinerary] = None) -> RequestSummary:
    itinerary = itinerary or parse_itinerary(record)
    days = _duration(record)
    pending = allowed_transitions(record.status)
    return RequestSummary(
        id=record.id,
        status=record.status,
        route=" → ".join(itinerary.cities),
        trip_type=itinerary.trip_type,
        duration_days=days,
        nights=max(days - 1, 0) if days is not None else None,
        amount=record.amount,
        next_actor=pending[0].actor if pending else None,
        costs=booking_costs.breakdown(record.booking_details) if record.booking_details else None,
    )
