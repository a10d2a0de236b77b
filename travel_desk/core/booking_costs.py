"""
Booking Cost Aggregation
Sums flight/train segments, confirmed hotels, cab and other expenses
"""
from typing import Iterator, Tuple

from travel_desk.core.exceptions import ValidationError
from travel_desk.models.booking import (
    BookingDetails,
    CostBreakdown,
    HotelBookingStatus,
)


def _line_items(details: BookingDetails) -> Iterator[Tuple[str, object]]:
    for i, segment in enumerate(details.flights, start=1):
        yield f"flights[{i}]", segment
    for i, hotel in enumerate(details.hotels, start=1):
        yield f"hotels[{i}]", hotel
    yield "cab", details.cab
    yield "other", details.other


def validate_costs(details: BookingDetails) -> None:
    """Reject negative cost or agent fee on any line"""
    for label, item in _line_items(details):
        if item.cost < 0:
            raise ValidationError(f"{label}: cost cannot be negative", field=f"{label}.cost")
        if item.agent_fee < 0:
            raise ValidationError(f"{label}: agent fee cannot be negative", field=f"{label}.agentFee")


def breakdown(details: BookingDetails) -> CostBreakdown:
    transport = sum(s.cost + s.agent_fee for s in details.flights)
    hotels = sum(h.cost + h.agent_fee for h in details.hotels if h.is_confirmed)
    cab = details.cab.cost + details.cab.agent_fee
    other = details.other.cost + details.other.agent_fee
    return CostBreakdown(
        transport=round(transport, 2),
        hotels=round(hotels, 2),
        cab=round(cab, 2),
        other=round(other, 2),
        total=round(transport + hotels + cab + other, 2),
        deferred_hotels=sum(1 for h in details.hotels if not h.is_confirmed),
    )


def aggregate_total(details: BookingDetails) -> float:
    return breakdown(details).total


def _set_hotel_status(details: BookingDetails, index: int, booking_status: HotelBookingStatus) -> BookingDetails:
    if index < 0 or index >= len(details.hotels):
        raise ValidationError(f"No hotel at position {index}", field="hotels")

    hotels = list(details.hotels)
    changes = {"booking_status": booking_status}
    if booking_status == HotelBookingStatus.BOOK_LATER:
        changes.update(cost=0.0, agent_fee=0.0)
    hotels[index] = hotels[index].model_copy(update=changes)

    updated = details.model_copy(update={"hotels": hotels})
    return updated.model_copy(update={"total_amount": aggregate_total(updated)})


def defer_hotel(details: BookingDetails, index: int) -> BookingDetails:
    """Mark a hotel as "Book Later"; its cost and fee drop to zero immediately"""
    return _set_hotel_status(details, index, HotelBookingStatus.BOOK_LATER)


def confirm_hotel(details: BookingDetails, index: int) -> BookingDetails:
    return _set_hotel_status(details, index, HotelBookingStatus.CONFIRMED)


def finalize(details: BookingDetails) -> BookingDetails:
    """Validate the breakdown and stamp the aggregated total on it"""
    validate_costs(details)
    return details.model_copy(update={"total_amount": aggregate_total(details)})
