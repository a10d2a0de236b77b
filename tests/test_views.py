from datetime import datetime

from conftest import make_record
from travel_desk.core import transitions
from travel_desk.core.itinerary import TripType
from travel_desk.core.transitions import Action, Actor
from travel_desk.core.views import StepState, status_timeline, summarize
from travel_desk.models.request import RequestStatus


def _states(record):
    return [(step.key, step.state) for step in status_timeline(record)]


def test_new_request_timeline(record):
    assert _states(record) == [
        ("submitted", StepState.COMPLETED),
        ("manager", StepState.CURRENT),
        ("admin", StepState.UPCOMING),
        ("travel_desk", StepState.UPCOMING),
        ("booked", StepState.UPCOMING),
    ]
    assert status_timeline(record)[0].at == record.submitted_date


def test_action_required_waits_on_employee():
    record = make_record(status=RequestStatus.ACTION_REQUIRED)
    steps = status_timeline(record)
    assert steps[3].state == StepState.CURRENT
    assert steps[3].detail == "Awaiting employee response"


def test_rejected_by_admin_stops_at_admin_stage(record):
    approved = transitions.apply_action(record, Action.APPROVE, actor=Actor.MANAGER,
                                        now=datetime(2026, 10, 13, 10, 0)).record
    rejected = transitions.apply_action(approved, Action.REJECT, actor=Actor.ADMIN,
                                        rejection_reason="Budget exceeded",
                                        now=datetime(2026, 10, 14, 10, 0)).record
    steps = status_timeline(rejected)

    assert [s.state for s in steps] == [
        StepState.COMPLETED, StepState.COMPLETED, StepState.REJECTED, StepState.SKIPPED, StepState.SKIPPED,
    ]
    assert steps[1].at == datetime(2026, 10, 13, 10, 0)
    assert steps[2].detail == "Budget exceeded"


def test_legacy_rejection_without_history():
    record = make_record(status=RequestStatus.REJECTED, rejection_reason="No")
    assert status_timeline(record)[1].state == StepState.REJECTED


def test_booked_timeline_all_completed(booking):
    record = make_record(status=RequestStatus.BOOKED, booking_details=booking,
                         updated_at=datetime(2026, 10, 15, 8, 0))
    steps = status_timeline(record)
    assert all(s.state == StepState.COMPLETED for s in steps)
    assert steps[-1].at == datetime(2026, 10, 15, 8, 0)


def test_summary_of_round_trip():
    record = make_record(destination="Paris", agent_notes="Origin: London",
                         start_date="2026-10-14", end_date="2026-10-18", status=RequestStatus.PENDING_ADMIN)
    summary = summarize(record)

    assert summary.route == "London → Paris → London"
    assert summary.trip_type == TripType.ROUND_TRIP
    assert summary.duration_days == 5
    assert summary.nights == 4
    assert summary.next_actor == Actor.ADMIN
    assert summary.costs is None


def test_summary_of_booked_request(booking):
    record = make_record(status=RequestStatus.BOOKED, booking_details=booking, amount=13200)
    summary = summarize(record)
    assert summary.next_actor is None
    assert summary.costs.total == 13200
    assert summary.route == "Bengaluru → Mumbai"


def test_summary_with_bad_dates():
    summary = summarize(make_record(start_date="someday", end_date="later"))
    assert summary.duration_days is None
    assert summary.nights is None
