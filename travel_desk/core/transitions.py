"""
Request Status Transitions
The approval state machine of a travel request.

Pending Manager -> Pending Admin -> Processing (Agent) <-> Action Required
-> Booked, with Rejected reachable from both approval stages. Booked and
Rejected are terminal.

Every status change goes through ``transition`` or ``apply_action``. Both
return a new record and the notification to emit, and raise
``InvalidTransition`` for a pair that is not in ``TRANSITIONS``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, List, Union

from travel_desk.core import booking_costs
from travel_desk.core.exceptions import (
    InvalidTransition,
    PermissionDenied,
    ValidationError,
)
from travel_desk.core.itinerary import append_user_selection, parse_itinerary_metadata
from travel_desk.models.booking import BookingDetails
from travel_desk.models.notes import AgentOptions, EmployeeReply
from travel_desk.models.notification import NotificationMessage, NotificationType
from travel_desk.models.request import RequestRecord, RequestStatus, StatusChange
from travel_desk.models.user import UserRole

logger = logging.getLogger(__name__)


class Actor(str, Enum):
    MANAGER = "Manager"
    ADMIN = "Admin"
    AGENT = "Agent"
    EMPLOYEE = "Employee"


class Action(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    SEND_OPTIONS = "send_options"
    COMPLETE_BOOKING = "complete_booking"
    SUBMIT_REPLY = "submit_reply"


_ROLE_ACTORS = {
    UserRole.EMPLOYEE: Actor.EMPLOYEE,
    UserRole.MANAGER: Actor.MANAGER,
    UserRole.ADMIN: Actor.ADMIN,
    UserRole.SUPER_ADMIN: Actor.ADMIN,
    UserRole.TRAVEL_AGENT: Actor.AGENT,
}


def actor_for_role(role: Union[UserRole, str]) -> Actor:
    return _ROLE_ACTORS[UserRole(role)]


@dataclass(frozen=True)
class Transition:
    """One row of the transition table"""
    from_status: RequestStatus
    action: Action
    actor: Actor
    to_status: RequestStatus
    required_payload: Optional[str] = None
    notification: Optional[str] = None
    notification_type: NotificationType = NotificationType.INFO


TRANSITIONS = (
    Transition(RequestStatus.PENDING_MANAGER, Action.APPROVE, Actor.MANAGER, RequestStatus.PENDING_ADMIN,
               notification="Request approved by Manager. Sent to Admin."),
    Transition(RequestStatus.PENDING_MANAGER, Action.REJECT, Actor.MANAGER, RequestStatus.REJECTED,
               required_payload="rejectionReason",
               notification="Travel request was rejected.", notification_type=NotificationType.ERROR),
    Transition(RequestStatus.PENDING_ADMIN, Action.APPROVE, Actor.ADMIN, RequestStatus.PROCESSING,
               notification="Request approved. Sent to Travel Desk."),
    Transition(RequestStatus.PENDING_ADMIN, Action.REJECT, Actor.ADMIN, RequestStatus.REJECTED,
               required_payload="rejectionReason",
               notification="Travel request was rejected.", notification_type=NotificationType.ERROR),
    Transition(RequestStatus.PROCESSING, Action.SEND_OPTIONS, Actor.AGENT, RequestStatus.ACTION_REQUIRED,
               required_payload="agentNotes",
               notification="Travel Agent has sent options."),
    Transition(RequestStatus.PROCESSING, Action.COMPLETE_BOOKING, Actor.AGENT, RequestStatus.BOOKED,
               required_payload="bookingDetails",
               notification="Travel booking confirmed!", notification_type=NotificationType.SUCCESS),
    Transition(RequestStatus.ACTION_REQUIRED, Action.SUBMIT_REPLY, Actor.EMPLOYEE, RequestStatus.PROCESSING,
               required_payload="agentNotes"),
)

_BY_TARGET = {(t.from_status, t.to_status): t for t in TRANSITIONS}
_BY_ACTION = {(t.from_status, t.action): t for t in TRANSITIONS}

TERMINAL_STATUSES = frozenset(
    status for status in RequestStatus if not any(t.from_status == status for t in TRANSITIONS)
)


@dataclass(frozen=True)
class TransitionResult:
    record: RequestRecord
    transition: Transition
    notification: Optional[NotificationMessage]


def is_terminal(status: RequestStatus) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


def allowed_transitions(status: RequestStatus, actor: Optional[Actor] = None) -> List[Transition]:
    """Rows of the table that can fire from ``status`` (optionally for one actor)"""
    status = RequestStatus(status)
    return [t for t in TRANSITIONS if t.from_status == status and (actor is None or t.actor == actor)]


def next_statuses(status: RequestStatus) -> List[RequestStatus]:
    return [t.to_status for t in allowed_transitions(status)]


def _coerce_status(value) -> RequestStatus:
    try:
        return RequestStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown request status '{value}'", field="status")


def _require_text(value: Optional[str], field: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message, field=field)
    return value.strip()


def _payload_updates(rule: Transition, record: RequestRecord, now: datetime, notes: Optional[str],
                     booking_details: Optional[BookingDetails], amount: Optional[float],
                     rejection_reason: Optional[str]) -> dict:
    if rule.action == Action.REJECT:
        reason = _require_text(rejection_reason, "rejectionReason", "A rejection reason is required")
        return {"rejection_reason": reason}

    if rule.action == Action.SEND_OPTIONS:
        text = _require_text(notes, "agentNotes", "Options text for the employee is required")
        return {
            "agent_notes": text,
            "agent_options": AgentOptions(text=text, sent_at=now),
            "employee_reply": None,
        }

    if rule.action == Action.SUBMIT_REPLY:
        reply = _require_text(notes, "agentNotes", "A reply to the travel desk is required")
        return {
            "agent_notes": append_user_selection(record.agent_notes, reply),
            "employee_reply": EmployeeReply(text=reply, replied_at=now),
        }

    if rule.action == Action.COMPLETE_BOOKING:
        if booking_details is None:
            raise ValidationError("Booking details are required to complete a booking", field="bookingDetails")
        finalized = booking_costs.finalize(booking_details)
        if amount is not None and abs(amount - finalized.total_amount) > 0.005:
            raise ValidationError(
                f"Amount {amount} does not match the booking total {finalized.total_amount}",
                field="amount",
            )
        updates = {"booking_details": finalized, "amount": finalized.total_amount}
        if notes and notes.strip():
            updates["agent_notes"] = notes.strip()
        return updates

    return {}


def _apply(rule: Transition, record: RequestRecord, actor: Optional[Actor], notes: Optional[str],
           booking_details: Optional[BookingDetails], amount: Optional[float],
           rejection_reason: Optional[str], now: Optional[datetime]) -> TransitionResult:
    if actor is not None and Actor(actor) != rule.actor:
        logger.warning("Request %s: %s may not %s (needs %s)", record.id, Actor(actor).value,
                       rule.action.value, rule.actor.value)
        raise PermissionDenied(
            f"Only the {rule.actor.value} can {rule.action.value.replace('_', ' ')} a '{record.status.value}' request",
            record.status, rule.to_status,
        )

    now = now or datetime.utcnow()
    updates = _payload_updates(rule, record, now, notes, booking_details, amount, rejection_reason)
    if "agent_notes" in updates and record.itinerary is None:
        # Legacy route lives only in the notes about to be replaced
        updates["itinerary"] = parse_itinerary_metadata(record.agent_notes)
    change = StatusChange(from_status=record.status, to_status=rule.to_status, action=rule.action.value,
                          actor=Actor(actor).value if actor is not None else None, at=now)
    updates.update(status=rule.to_status, version=record.version + 1, updated_at=now,
                   history=[*record.history, change])
    updated = record.model_copy(update=updates)

    notification = None
    if rule.notification:
        notification = NotificationMessage(title="Status Updated", message=rule.notification,
                                           type=rule.notification_type)

    logger.info("Request %s: %s -> %s (%s)", record.id, record.status.value, rule.to_status.value,
                rule.action.value)
    return TransitionResult(record=updated, transition=rule, notification=notification)


def transition(record: RequestRecord, target_status: Union[RequestStatus, str], notes: Optional[str] = None,
               booking_details: Optional[BookingDetails] = None, amount: Optional[float] = None,
               rejection_reason: Optional[str] = None, actor: Optional[Actor] = None,
               now: Optional[datetime] = None) -> TransitionResult:
    """
    Move ``record`` to ``target_status``.

    Raises InvalidTransition if the pair is not in the table, PermissionDenied
    if ``actor`` is given and does not own the row, ValidationError if the
    row's payload is missing or invalid. The input record is left untouched.
    """
    target = _coerce_status(target_status)
    rule = _BY_TARGET.get((record.status, target))
    if rule is None:
        logger.warning("Request %s: rejected transition %s -> %s", record.id, record.status.value, target.value)
        reason = "request is closed" if is_terminal(record.status) else "not an allowed next status"
        raise InvalidTransition(record.status, target, reason=reason)
    return _apply(rule, record, actor, notes, booking_details, amount, rejection_reason, now)


def apply_action(record: RequestRecord, action: Union[Action, str], actor: Optional[Actor] = None,
                 notes: Optional[str] = None, booking_details: Optional[BookingDetails] = None,
                 amount: Optional[float] = None, rejection_reason: Optional[str] = None,
                 now: Optional[datetime] = None) -> TransitionResult:
    """Same as ``transition`` but addressed by action instead of target status"""
    try:
        action = Action(action)
    except ValueError:
        raise InvalidTransition(record.status, reason=f"unknown action '{action}'")
    rule = _BY_ACTION.get((record.status, action))
    if rule is None:
        logger.warning("Request %s: cannot %s from %s", record.id, action.value, record.status.value)
        raise InvalidTransition(record.status, reason=f"'{action.value}' is not available")
    return _apply(rule, record, actor, notes, booking_details, amount, rejection_reason, now)
