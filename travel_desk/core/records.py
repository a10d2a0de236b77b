"""
Request Creation
Validates a new travel request and builds its initial record
"""
from datetime import date, datetime
from typing import Optional

from travel_desk.core.exceptions import ValidationError
from travel_desk.core.itinerary import render_itinerary_notes
from travel_desk.models.notes import ItineraryMetadata, MULTI_CITY_LABEL
from travel_desk.models.request import RequestRecord, RequestStatus, TravelRequestCreate
from travel_desk.models.user import SessionContext


def parse_iso_date(value: Optional[str], field: str) -> date:
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got '{value}'", field=field)


def check_dates(start_date: str, end_date: str) -> None:
    """Start must not be after end. Only checked at creation."""
    if parse_iso_date(start_date, "startDate") > parse_iso_date(end_date, "endDate"):
        raise ValidationError("End date cannot be before start date", field="endDate")


def new_request(payload: TravelRequestCreate, session: SessionContext,
                now: Optional[datetime] = None) -> RequestRecord:
    """
    Build the record for a newly submitted request (status Pending Manager).

    The id is left empty for the store to assign.
    """
    for i, leg in enumerate(payload.legs, start=1):
        if not leg.from_city.strip() or not leg.to_city.strip():
            raise ValidationError(f"Leg {i} needs both a from and a to city", field="legs")

    destination = MULTI_CITY_LABEL if payload.legs else payload.destination.strip()
    if not destination:
        raise ValidationError("Destination is required", field="destination")

    end_date = payload.end_date or payload.start_date
    check_dates(payload.start_date, end_date)

    itinerary = ItineraryMetadata(
        origin=payload.origin.strip() if payload.origin else None,
        legs=payload.legs,
        round_trip=payload.round_trip,
        flexible_dates=payload.flexible_dates,
        remarks=payload.remarks,
    )

    return RequestRecord(
        destination=destination,
        start_date=payload.start_date,
        end_date=end_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        status=RequestStatus.PENDING_MANAGER,
        amount=0.0,
        employee_id=session.user_id,
        employee_name=session.name,
        employee_avatar=session.avatar,
        department=payload.department or session.department,
        type=payload.type,
        purpose=payload.purpose,
        agent_notes=render_itinerary_notes(itinerary) or None,
        itinerary=itinerary,
        submitted_date=now or datetime.utcnow(),
    )
