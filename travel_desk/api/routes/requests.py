"""
Travel Request Routes
Submission, approval, travel desk handling and booking of travel requests
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status

from travel_desk.api.errors import to_http_exception
from travel_desk.api.routes.auth import get_session
from travel_desk.core.exceptions import TravelDeskError
from travel_desk.core.itinerary import Itinerary, TripType, booking_prefill, parse_itinerary
from travel_desk.core.transitions import Action, TransitionResult, actor_for_role, allowed_transitions
from travel_desk.core.views import RequestSummary, TimelineStep, status_timeline, summarize
from travel_desk.models.booking import BookingDetails, CamelModel
from travel_desk.models.notification import NotificationMessage
from travel_desk.models.request import (
    ActionPayload,
    BookingPayload,
    OptionsPayload,
    RejectPayload,
    ReplyPayload,
    RequestRecord,
    RequestStatus,
    StatusUpdate,
    TravelRequestCreate,
)
from travel_desk.models.user import SessionContext, UserRole
from travel_desk.services.notifications import notification_service
from travel_desk.services.store import BeanieRequestStore
from travel_desk.services.workflow import RequestWorkflowService

router = APIRouter()


class RequestDetail(CamelModel):
    """A request together with the views derived from it"""
    request: RequestRecord
    itinerary: Itinerary
    trip_type: TripType
    timeline: List[TimelineStep]
    summary: RequestSummary
    available_actions: List[Action]


class TransitionResponse(CamelModel):
    request: RequestRecord
    notification: Optional[NotificationMessage] = None


def get_workflow_service() -> RequestWorkflowService:
    return RequestWorkflowService(BeanieRequestStore(), notification_service)


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(request=result.record, notification=result.notification)


def _detail(record: RequestRecord, session: SessionContext) -> RequestDetail:
    itinerary = parse_itinerary(record)
    actor = actor_for_role(session.role)
    return RequestDetail(
        request=record,
        itinerary=itinerary,
        trip_type=itinerary.trip_type,
        timeline=status_timeline(record),
        summary=summarize(record, itinerary),
        available_actions=[t.action for t in allowed_transitions(record.status, actor)],
    )


async def _act(service: RequestWorkflowService, session: SessionContext, request_id: str,
               action: Action, **kwargs) -> TransitionResponse:
    try:
        result = await service.apply_action(session, request_id, action, **kwargs)
    except TravelDeskError as e:
        raise to_http_exception(e)
    return _transition_response(result)


@router.get("/", response_model=List[RequestRecord])
async def get_requests(
    scope: Optional[str] = None,
    request_status: Optional[RequestStatus] = None,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """
    List travel requests.

    Employees see their own requests, managers and the travel desk their
    queue, admins everything. ``scope`` (mine, queue, all) overrides the
    default for the caller's role.
    """
    try:
        return await service.list_requests(session, scope=scope, status=request_status)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TravelDeskError as e:
        raise to_http_exception(e)


@router.post("/", response_model=RequestRecord, status_code=status.HTTP_201_CREATED)
async def create_request(
    request_data: TravelRequestCreate,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Submit a new travel request; it starts in Pending Manager"""
    try:
        return await service.create_request(session, request_data)
    except TravelDeskError as e:
        raise to_http_exception(e)


@router.get("/{request_id}", response_model=RequestDetail)
async def get_request(
    request_id: str,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    try:
        record = await service.get_request(session, request_id)
    except TravelDeskError as e:
        raise to_http_exception(e)
    return _detail(record, session)


@router.put("/{request_id}/status", response_model=TransitionResponse)
async def update_request_status(
    request_id: str,
    update: StatusUpdate,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """
    Move a request to a new status.

    Only pairs in the transition table are accepted. Rejection needs
    ``rejectionReason``, options and replies need ``agentNotes``, and a
    booking needs ``bookingDetails``.
    """
    try:
        result = await service.update_request_status(
            session,
            request_id,
            update.status,
            notes=update.agent_notes,
            booking_details=update.booking_details,
            amount=update.amount,
            rejection_reason=update.rejection_reason,
            expected_version=update.expected_version,
        )
    except TravelDeskError as e:
        raise to_http_exception(e)
    return _transition_response(result)


@router.post("/{request_id}/approve", response_model=TransitionResponse)
async def approve_request(
    request_id: str,
    payload: Optional[ActionPayload] = None,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Manager or admin approval, depending on the current stage"""
    return await _act(service, session, request_id, Action.APPROVE,
                      expected_version=payload.expected_version if payload else None)


@router.post("/{request_id}/reject", response_model=TransitionResponse)
async def reject_request(
    request_id: str,
    payload: RejectPayload,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    return await _act(service, session, request_id, Action.REJECT,
                      rejection_reason=payload.reason, expected_version=payload.expected_version)


@router.post("/{request_id}/options", response_model=TransitionResponse)
async def send_options(
    request_id: str,
    payload: OptionsPayload,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Travel desk sends travel options back to the employee"""
    return await _act(service, session, request_id, Action.SEND_OPTIONS,
                      notes=payload.as_text(), expected_version=payload.expected_version)


@router.post("/{request_id}/reply", response_model=TransitionResponse)
async def submit_reply(
    request_id: str,
    payload: ReplyPayload,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Employee answers the travel desk's options"""
    return await _act(service, session, request_id, Action.SUBMIT_REPLY,
                      notes=payload.reply, expected_version=payload.expected_version)


@router.post("/{request_id}/book", response_model=TransitionResponse)
async def complete_booking(
    request_id: str,
    payload: BookingPayload,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Travel desk completes the booking; the amount is the aggregated cost"""
    return await _act(service, session, request_id, Action.COMPLETE_BOOKING,
                      booking_details=payload.booking_details, amount=payload.amount,
                      expected_version=payload.expected_version)


@router.get("/{request_id}/booking-prefill", response_model=BookingDetails)
async def get_booking_prefill(
    request_id: str,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Booking form pre-filled from the request itinerary"""
    if session.role not in (UserRole.TRAVEL_AGENT, UserRole.ADMIN, UserRole.SUPER_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the travel desk can prepare bookings"
        )
    try:
        record = await service.get_request(session, request_id)
    except TravelDeskError as e:
        raise to_http_exception(e)
    return booking_prefill(record)


@router.post("/{request_id}/reconcile", response_model=RequestRecord)
async def reconcile_request(
    request_id: str,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """Store-confirmed state of a request, to recover after a failed save"""
    try:
        await service.get_request(session, request_id)
        return await service.reconcile(request_id)
    except TravelDeskError as e:
        raise to_http_exception(e)


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    try:
        await service.delete_request(session, request_id)
    except TravelDeskError as e:
        raise to_http_exception(e)
    return {"message": "Travel request deleted"}
