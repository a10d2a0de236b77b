"""
Request Workflow Service
Runs travel request actions against the store: validate, write, confirm, notify.

Nothing is applied locally ahead of the store. A transition is computed by
the engine, written with a version guard, and only the record returned by
the store is handed back. When the write cannot be confirmed a
PersistenceError carrying the attempted record is raised, and ``reconcile``
returns whatever the store currently holds.
"""
import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from travel_desk.config import settings
from travel_desk.core import transitions
from travel_desk.core.exceptions import (
    ConcurrentModification,
    PermissionDenied,
    PersistenceError,
    RequestNotFound,
)
from travel_desk.core.records import new_request
from travel_desk.core.stats import AggregateStats, SystemOverview, compute_stats, status_counts, system_overview
from travel_desk.core.transitions import Action, Actor, TransitionResult, actor_for_role
from travel_desk.models.booking import BookingDetails
from travel_desk.models.notification import NotificationMessage, NotificationType
from travel_desk.models.request import RequestRecord, RequestStatus, TravelRequestCreate
from travel_desk.models.user import SessionContext, UserRole
from travel_desk.services.notifications import Notifier
from travel_desk.services.store import RequestStore

logger = logging.getLogger(__name__)


SCOPE_MINE = "mine"
SCOPE_QUEUE = "queue"
SCOPE_ALL = "all"

_ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


# Statuses an actor keeps in view while someone else holds the request
_WATCHED = {
    Actor.AGENT: [RequestStatus.ACTION_REQUIRED],
}


def queue_statuses(actor: Actor) -> List[RequestStatus]:
    """Statuses in which ``actor`` has something to do or is waiting on a reply"""
    own = [t.from_status for t in transitions.TRANSITIONS if t.actor == actor]
    return list(dict.fromkeys(own + _WATCHED.get(actor, [])))


def default_scope(role: UserRole) -> str:
    if role == UserRole.EMPLOYEE:
        return SCOPE_MINE
    if role in _ADMIN_ROLES:
        return SCOPE_ALL
    return SCOPE_QUEUE


class RequestWorkflowService:
    """Travel request operations on behalf of an authenticated user"""

    def __init__(self, store: RequestStore, notifier: Optional[Notifier] = None,
                 retry_attempts: Optional[int] = None):
        self.store = store
        self.notifier = notifier
        self.retry_attempts = max(1, retry_attempts if retry_attempts is not None
                                  else settings.PERSISTENCE_RETRY_ATTEMPTS)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_requests(self, session: SessionContext, scope: Optional[str] = None,
                            status: Optional[RequestStatus] = None) -> List[RequestRecord]:
        scope = scope or default_scope(session.role)
        records = await self.store.list_requests()

        if scope == SCOPE_MINE:
            records = [r for r in records if r.employee_id == session.user_id]
        elif scope == SCOPE_QUEUE:
            actor = actor_for_role(session.role)
            statuses = queue_statuses(actor)
            records = [r for r in records if r.status in statuses]
            if actor == Actor.EMPLOYEE:
                records = [r for r in records if r.employee_id == session.user_id]
        elif scope == SCOPE_ALL:
            if session.role not in _ADMIN_ROLES and session.role != UserRole.TRAVEL_AGENT:
                raise PermissionDenied("Only admins and the travel desk can list all requests")
        else:
            raise ValueError(f"Unknown scope '{scope}'")

        if status is not None:
            records = [r for r in records if r.status == status]
        return records

    async def get_request(self, session: SessionContext, request_id: str) -> RequestRecord:
        record = await self.store.get_request(request_id)
        if record is None:
            raise RequestNotFound(request_id)
        if session.role == UserRole.EMPLOYEE and record.employee_id != session.user_id:
            raise RequestNotFound(request_id)
        return record

    async def reconcile(self, request_id: str) -> RequestRecord:
        """Store-confirmed state of a request, after a failed or doubtful write"""
        record = await self.store.get_request(request_id)
        if record is None:
            raise RequestNotFound(request_id)
        logger.info("Reconciled request %s at version %s (%s)", record.id, record.version, record.status.value)
        return record

    async def get_stats(self, now: Optional[datetime] = None) -> AggregateStats:
        store_stats = getattr(self.store, "get_aggregate_stats", None)
        if store_stats is not None:
            try:
                return await store_stats(now)
            except PersistenceError as e:
                logger.warning("Store stats unavailable, computing locally: %s", e)
        return compute_stats(await self.store.list_requests(), now)

    async def get_overview(self) -> SystemOverview:
        return system_overview(await self.store.list_requests())

    async def get_status_counts(self) -> Dict[str, int]:
        return status_counts(await self.store.list_requests())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_request(self, session: SessionContext, payload: TravelRequestCreate) -> RequestRecord:
        record = new_request(payload, session)
        saved = await self._with_retries(record, lambda: self.store.create_request(record))
        await self._notify(
            [session.user_id],
            NotificationMessage(title="Request Submitted",
                                message=f"Your request to {saved.destination} has been submitted.",
                                type=NotificationType.SUCCESS),
            saved.id,
        )
        return saved

    async def update_request_status(self, session: SessionContext, request_id: str,
                                    status: RequestStatus, notes: Optional[str] = None,
                                    booking_details: Optional[BookingDetails] = None,
                                    amount: Optional[float] = None, rejection_reason: Optional[str] = None,
                                    expected_version: Optional[int] = None) -> TransitionResult:
        """Move a request to ``status``; only transitions in the table are accepted"""
        return await self._run(
            session, request_id, expected_version,
            lambda record, actor: transitions.transition(
                record, status, notes=notes, booking_details=booking_details, amount=amount,
                rejection_reason=rejection_reason, actor=actor,
            ),
        )

    async def apply_action(self, session: SessionContext, request_id: str, action: Action,
                           notes: Optional[str] = None, booking_details: Optional[BookingDetails] = None,
                           amount: Optional[float] = None, rejection_reason: Optional[str] = None,
                           expected_version: Optional[int] = None) -> TransitionResult:
        return await self._run(
            session, request_id, expected_version,
            lambda record, actor: transitions.apply_action(
                record, action, actor=actor, notes=notes, booking_details=booking_details,
                amount=amount, rejection_reason=rejection_reason,
            ),
        )

    async def delete_request(self, session: SessionContext, request_id: str) -> None:
        record = await self.get_request(session, request_id)
        is_owner = record.employee_id is not None and record.employee_id == session.user_id
        if not is_owner and session.role not in _ADMIN_ROLES:
            raise PermissionDenied("Only the requester or an admin can delete a request", record.status)

        await self.store.delete_request(request_id)
        logger.info("Request %s deleted by %s", request_id, session.user_id)
        await self._notify(
            [session.user_id, record.employee_id],
            NotificationMessage(title="Request Deleted",
                                message="Travel request has been permanently deleted.",
                                type=NotificationType.INFO),
            request_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, session: SessionContext, request_id: str, expected_version: Optional[int],
                   compute: Callable[[RequestRecord, Actor], TransitionResult]) -> TransitionResult:
        record = await self.get_request(session, request_id)
        if expected_version is not None and expected_version != record.version:
            raise ConcurrentModification(request_id, expected_version)

        actor = actor_for_role(session.role)
        result = compute(record, actor)
        if result.transition.actor == Actor.EMPLOYEE and record.employee_id != session.user_id:
            raise PermissionDenied("Only the requester can reply to the travel desk",
                                   record.status, result.transition.to_status)

        confirmed = await self._with_retries(
            result.record, lambda: self.store.update_request(result.record, record.version)
        )
        if result.notification is not None:
            await self._notify([session.user_id, confirmed.employee_id], result.notification, confirmed.id)
        return dataclasses.replace(result, record=confirmed)

    async def _with_retries(self, attempted: RequestRecord, write):
        last_error = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await write()
            except PersistenceError as e:
                last_error = e
                logger.warning("Write of request %s failed (attempt %d/%d): %s",
                               attempted.id or "(new)", attempt, self.retry_attempts, e.cause)
            except ConcurrentModification:
                # A failed attempt may have been stored with its acknowledgement lost
                if last_error is None:
                    raise
                saved = await self._stored_copy_of(attempted)
                if saved is None:
                    raise
                logger.info("Request %s was already saved by attempt %d", attempted.id, attempt - 1)
                return saved

        logger.error("Giving up on request %s after %d attempts", attempted.id or "(new)", self.retry_attempts)
        raise PersistenceError(attempted.id, attempted=attempted, cause=last_error.cause)

    async def _stored_copy_of(self, attempted: RequestRecord) -> Optional[RequestRecord]:
        """The stored record if it is the write ``attempted``, else None"""
        stored = await self.store.get_request(attempted.id)
        if stored is None or stored.version != attempted.version or stored.status != attempted.status:
            return None
        if len(stored.history) != len(attempted.history):
            return None
        if stored.updated_at is None or attempted.updated_at is None:
            return None
        # MongoDB keeps datetimes to the millisecond
        if abs(stored.updated_at - attempted.updated_at) >= timedelta(milliseconds=1):
            return None
        return stored

    async def _notify(self, recipients, message: NotificationMessage, request_id: Optional[str]) -> None:
        if self.notifier is None:
            return
        await self.notifier.publish([r for r in recipients if r], message, request_id)
