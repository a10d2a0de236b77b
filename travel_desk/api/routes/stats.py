"""
Stats Routes
Dashboard numbers for travel requests
"""
from typing import Dict
from fastapi import APIRouter, Depends, HTTPException, status

from travel_desk.api.errors import to_http_exception
from travel_desk.api.routes.auth import get_session
from travel_desk.api.routes.requests import get_workflow_service
from travel_desk.core.exceptions import TravelDeskError
from travel_desk.core.stats import AggregateStats, SystemOverview
from travel_desk.models.user import SessionContext, UserRole
from travel_desk.services.workflow import RequestWorkflowService


router = APIRouter()


def _require_admin(session: SessionContext) -> None:
    if session.role not in (UserRole.ADMIN, UserRole.SUPER_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can view system statistics"
        )


@router.get("/", response_model=AggregateStats)
async def get_stats(
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """
    Requests this month, all time, approved, pending and rejected, plus the
    change against last month
    """
    try:
        return await service.get_stats()
    except TravelDeskError as e:
        raise to_http_exception(e)


@router.get("/overview", response_model=SystemOverview)
async def get_overview(
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    """System-wide spend and activity (Admin only)"""
    _require_admin(session)
    try:
        return await service.get_overview()
    except TravelDeskError as e:
        raise to_http_exception(e)


@router.get("/status-counts", response_model=Dict[str, int])
async def get_status_counts(
    session: SessionContext = Depends(get_session),
    service: RequestWorkflowService = Depends(get_workflow_service)
):
    _require_admin(session)
    try:
        return await service.get_status_counts()
    except TravelDeskError as e:
        raise to_http_exception(e)
