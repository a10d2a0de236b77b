from datetime import datetime

import pytest

from conftest import make_record
from travel_desk.core import transitions
from travel_desk.core.exceptions import InvalidTransition, PermissionDenied, ValidationError
from travel_desk.core.itinerary import USER_SELECTION_SEPARATOR, TripType, booking_prefill, parse_itinerary
from travel_desk.core.transitions import Action, Actor, actor_for_role
from travel_desk.models.notification import NotificationType
from travel_desk.models.request import RequestStatus
from travel_desk.models.user import UserRole

S = RequestStatus
NOW = datetime(2026, 10, 13, 11, 0)


def test_table_has_exactly_the_seven_rows():
    pairs = {(t.from_status, t.to_status) for t in transitions.TRANSITIONS}
    assert pairs == {
        (S.PENDING_MANAGER, S.PENDING_ADMIN),
        (S.PENDING_MANAGER, S.REJECTED),
        (S.PENDING_ADMIN, S.PROCESSING),
        (S.PENDING_ADMIN, S.REJECTED),
        (S.PROCESSING, S.ACTION_REQUIRED),
        (S.PROCESSING, S.BOOKED),
        (S.ACTION_REQUIRED, S.PROCESSING),
    }


def test_terminal_statuses():
    assert transitions.TERMINAL_STATUSES == {S.BOOKED, S.REJECTED}
    assert transitions.is_terminal(S.BOOKED)
    assert not transitions.is_terminal(S.PROCESSING)
    assert transitions.next_statuses(S.REJECTED) == []


@pytest.mark.parametrize("current, target", [
    (S.PENDING_MANAGER, S.BOOKED),
    (S.PENDING_MANAGER, S.PROCESSING),
    (S.PENDING_ADMIN, S.PENDING_MANAGER),
    (S.PROCESSING, S.REJECTED),
    (S.ACTION_REQUIRED, S.BOOKED),
    (S.BOOKED, S.PROCESSING),
    (S.REJECTED, S.PENDING_MANAGER),
    (S.PENDING_MANAGER, S.PENDING_MANAGER),
])
def test_pairs_outside_the_table_are_refused(current, target):
    record = make_record(status=current)
    with pytest.raises(InvalidTransition):
        transitions.transition(record, target, rejection_reason="x", notes="x")


def test_closed_request_reports_why():
    record = make_record(status=S.BOOKED)
    with pytest.raises(InvalidTransition) as exc:
        transitions.transition(record, S.PROCESSING)
    assert "closed" in exc.value.message


def test_unknown_status_is_a_validation_error(record):
    with pytest.raises(ValidationError):
        transitions.transition(record, "Approved")


def test_manager_approval_moves_to_admin(record):
    result = transitions.transition(record, S.PENDING_ADMIN, actor=Actor.MANAGER, now=NOW)

    assert result.record.status == S.PENDING_ADMIN
    assert result.record.version == record.version + 1
    assert result.record.updated_at == NOW
    assert result.notification.message == "Request approved by Manager. Sent to Admin."
    assert result.notification.type == NotificationType.INFO
    assert record.status == S.PENDING_MANAGER


def test_history_records_each_step(record):
    result = transitions.transition(record, S.PENDING_ADMIN, actor=Actor.MANAGER, now=NOW)
    change = result.record.history[-1]
    assert (change.from_status, change.to_status) == (S.PENDING_MANAGER, S.PENDING_ADMIN)
    assert change.action == "approve"
    assert change.actor == "Manager"
    assert change.at == NOW


def test_rejection_requires_a_reason(record):
    with pytest.raises(ValidationError) as exc:
        transitions.transition(record, S.REJECTED, rejection_reason="   ")
    assert exc.value.field == "rejectionReason"


def test_rejection_stores_reason_and_notifies_error(record):
    result = transitions.transition(record, S.REJECTED, rejection_reason="  Not in budget ")
    assert result.record.rejection_reason == "Not in budget"
    assert result.notification.message == "Travel request was rejected."
    assert result.notification.type == NotificationType.ERROR


def test_wrong_actor_is_denied(record):
    with pytest.raises(PermissionDenied) as exc:
        transitions.transition(record, S.PENDING_ADMIN, actor=Actor.ADMIN)
    assert isinstance(exc.value, InvalidTransition)
    assert "Manager" in exc.value.message


def test_manager_then_admin_rejection_end_to_end(record):
    approved = transitions.apply_action(record, Action.APPROVE, actor=Actor.MANAGER).record
    rejected = transitions.apply_action(approved, Action.REJECT, actor=Actor.ADMIN,
                                        rejection_reason="Budget exceeded")

    assert rejected.record.status == S.REJECTED
    assert rejected.record.rejection_reason == "Budget exceeded"
    assert rejected.record.version == 2
    assert [c.to_status for c in rejected.record.history] == [S.PENDING_ADMIN, S.REJECTED]


def test_admin_approval_goes_to_travel_desk():
    record = make_record(status=S.PENDING_ADMIN)
    result = transitions.apply_action(record, Action.APPROVE, actor=Actor.ADMIN)
    assert result.record.status == S.PROCESSING
    assert result.notification.message == "Request approved. Sent to Travel Desk."


def test_send_options_requires_text():
    record = make_record(status=S.PROCESSING)
    with pytest.raises(ValidationError):
        transitions.apply_action(record, Action.SEND_OPTIONS, actor=Actor.AGENT, notes="")


def test_options_and_reply_round_trip():
    record = make_record(status=S.PROCESSING, agent_notes="Origin: Pune")
    options = transitions.apply_action(record, Action.SEND_OPTIONS, actor=Actor.AGENT,
                                       notes="1. Indigo 09:00\n2. Vistara 14:00", now=NOW).record
    assert options.status == S.ACTION_REQUIRED
    assert options.agent_options.text == "1. Indigo 09:00\n2. Vistara 14:00"
    assert options.agent_notes == "1. Indigo 09:00\n2. Vistara 14:00"

    reply = transitions.apply_action(options, Action.SUBMIT_REPLY, actor=Actor.EMPLOYEE,
                                     notes="Option 2 please")
    assert reply.record.status == S.PROCESSING
    assert reply.record.employee_reply.text == "Option 2 please"
    assert reply.record.agent_notes.endswith(USER_SELECTION_SEPARATOR + "Option 2 please")
    assert reply.notification is None


def test_booking_sets_amount_from_breakdown(booking):
    record = make_record(status=S.PROCESSING)
    result = transitions.transition(record, S.BOOKED, booking_details=booking)

    assert result.record.status == S.BOOKED
    assert result.record.amount == 13200
    assert result.record.booking_details.total_amount == 13200
    assert result.notification.message == "Travel booking confirmed!"
    assert result.notification.type == NotificationType.SUCCESS


def test_booking_requires_details():
    record = make_record(status=S.PROCESSING)
    with pytest.raises(ValidationError):
        transitions.transition(record, S.BOOKED)


def test_booking_amount_must_match_total(booking):
    record = make_record(status=S.PROCESSING)
    with pytest.raises(ValidationError) as exc:
        transitions.transition(record, S.BOOKED, booking_details=booking, amount=12000)
    assert exc.value.field == "amount"


def test_action_not_available_in_status():
    record = make_record(status=S.PENDING_ADMIN)
    with pytest.raises(InvalidTransition):
        transitions.apply_action(record, Action.COMPLETE_BOOKING, actor=Actor.AGENT)


@pytest.mark.parametrize("role, actor", [
    (UserRole.EMPLOYEE, Actor.EMPLOYEE),
    (UserRole.MANAGER, Actor.MANAGER),
    (UserRole.ADMIN, Actor.ADMIN),
    (UserRole.SUPER_ADMIN, Actor.ADMIN),
    (UserRole.TRAVEL_AGENT, Actor.AGENT),
])
def test_actor_for_role(role, actor):
    assert actor_for_role(role) == actor


def test_allowed_transitions_for_actor():
    rows = transitions.allowed_transitions(S.PROCESSING, Actor.AGENT)
    assert {t.action for t in rows} == {Action.SEND_OPTIONS, Action.COMPLETE_BOOKING}
    assert transitions.allowed_transitions(S.PROCESSING, Actor.MANAGER) == []


def test_unknown_action_is_an_invalid_transition(record):
    with pytest.raises(InvalidTransition) as exc:
        transitions.apply_action(record, "escalate", actor=Actor.MANAGER)
    assert "escalate" in exc.value.message


LEGACY_MULTI_CITY_NOTES = (
    "Multi City Trip:\n"
    "1. Pune -> Delhi | 2026-10-12 | 09:00 AM\n"
    "2. Delhi -> Goa | 2026-10-14 | 11:00 AM"
)


def test_sending_options_keeps_legacy_route():
    record = make_record(status=S.PROCESSING, destination="Multi City Trip",
                         agent_notes=LEGACY_MULTI_CITY_NOTES,
                         start_date="2026-10-12", end_date="2026-10-14")
    assert parse_itinerary(record).cities == ["Pune", "Delhi", "Goa"]

    options = transitions.apply_action(record, Action.SEND_OPTIONS, actor=Actor.AGENT,
                                       notes="Option A: Indigo 6E-1").record
    reply = transitions.apply_action(options, Action.SUBMIT_REPLY, actor=Actor.EMPLOYEE,
                                     notes="Option A").record

    for updated in (options, reply):
        itinerary = parse_itinerary(updated)
        assert itinerary.cities == ["Pune", "Delhi", "Goa"]
        assert itinerary.trip_type == TripType.MULTI_CITY
    assert [s.to_city for s in booking_prefill(reply).flights] == ["Delhi", "Goa"]


def test_sending_options_keeps_legacy_origin():
    record = make_record(status=S.PROCESSING, destination="Paris", agent_notes="Origin: London")
    options = transitions.apply_action(record, Action.SEND_OPTIONS, actor=Actor.AGENT,
                                       notes="1. Eurostar 08:01").record
    assert options.itinerary.origin == "London"
    assert parse_itinerary(options).cities == ["London", "Paris"]
