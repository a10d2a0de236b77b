from datetime import datetime

import pytest

from travel_desk.core.exceptions import ValidationError
from travel_desk.core.records import check_dates, new_request
from travel_desk.models.notes import ItineraryLeg
from travel_desk.models.request import RequestStatus, TravelRequestCreate


NOW = datetime(2026, 10, 12, 9, 30)


def test_new_request_snapshot(employee):
    payload = TravelRequestCreate(destination="Mumbai, Maharashtra", start_date="2026-10-14",
                                  end_date="2026-10-16", origin=" Bengaluru ", purpose="Client visit")
    record = new_request(payload, employee, now=NOW)

    assert record.id is None
    assert record.status == RequestStatus.PENDING_MANAGER
    assert record.amount == 0
    assert record.employee_id == "USR-EMP"
    assert record.employee_name == "Alex Morgan"
    assert record.department == "Product"
    assert record.submitted_date == NOW
    assert record.itinerary.origin == "Bengaluru"
    assert record.agent_notes == "Origin: Bengaluru"
    assert record.version == 0


def test_camel_case_payload(employee):
    payload = TravelRequestCreate.model_validate({
        "destination": "Goa", "startDate": "2026-10-14", "endDate": "2026-10-14",
        "roundTrip": True, "flexibleDates": True,
    })
    record = new_request(payload, employee)
    assert "Trip: Round Trip (return to origin)" in record.agent_notes
    assert record.itinerary.flexible_dates


def test_end_date_defaults_to_start(employee):
    record = new_request(TravelRequestCreate(destination="Goa", start_date="2026-10-14"), employee)
    assert record.end_date == "2026-10-14"


def test_end_before_start_rejected(employee):
    payload = TravelRequestCreate(destination="Goa", start_date="2026-10-14", end_date="2026-10-12")
    with pytest.raises(ValidationError) as exc:
        new_request(payload, employee)
    assert exc.value.field == "endDate"


def test_destination_required(employee):
    with pytest.raises(ValidationError) as exc:
        new_request(TravelRequestCreate(destination="  ", start_date="2026-10-14"), employee)
    assert exc.value.field == "destination"


def test_bad_date_format(employee):
    with pytest.raises(ValidationError):
        new_request(TravelRequestCreate(destination="Goa", start_date="14/10/2026"), employee)


def test_multi_city_request(employee):
    legs = [
        ItineraryLeg(from_city="Pune", to_city="Delhi", date="2026-10-12", time="09:00 AM"),
        ItineraryLeg(from_city="Delhi", to_city="Pune", date="2026-10-14", time="06:00 PM"),
    ]
    payload = TravelRequestCreate(start_date="2026-10-12", end_date="2026-10-14", legs=legs)
    record = new_request(payload, employee)

    assert record.destination == "Multi City Trip"
    assert record.agent_notes.startswith("Multi City Trip:\n1. Pune -> Delhi")
    assert record.itinerary.is_multi_city


def test_incomplete_leg_rejected(employee):
    payload = TravelRequestCreate(start_date="2026-10-12", legs=[ItineraryLeg(from_city="Pune")])
    with pytest.raises(ValidationError) as exc:
        new_request(payload, employee)
    assert exc.value.field == "legs"


def test_department_override(employee):
    payload = TravelRequestCreate(destination="Goa", start_date="2026-10-14", department="Sales")
    assert new_request(payload, employee).department == "Sales"


def test_check_dates_same_day_ok():
    check_dates("2026-10-14", "2026-10-14")
