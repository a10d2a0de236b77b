import pytest

from travel_desk.core import booking_costs
from travel_desk.core.exceptions import ValidationError
from travel_desk.models.booking import BookingDetails, HotelBooking, HotelBookingStatus, Segment


def test_total_of_all_groups(booking):
    assert booking_costs.aggregate_total(booking) == 13200


def test_breakdown_groups(booking):
    costs = booking_costs.breakdown(booking)
    assert costs.transport == 5500
    assert costs.hotels == 2200
    assert costs.cab == 1500
    assert costs.other == 4000
    assert costs.deferred_hotels == 0


def test_deferred_hotel_drops_out_of_total(booking):
    deferred = booking_costs.defer_hotel(booking, 0)

    hotel = deferred.hotels[0]
    assert hotel.booking_status == HotelBookingStatus.BOOK_LATER
    assert hotel.cost == 0
    assert hotel.agent_fee == 0
    assert deferred.total_amount == 11000
    assert booking_costs.breakdown(deferred).deferred_hotels == 1
    assert booking.hotels[0].cost == 2000


def test_confirming_again_keeps_zeroed_cost(booking):
    confirmed = booking_costs.confirm_hotel(booking_costs.defer_hotel(booking, 0), 0)
    assert confirmed.hotels[0].is_confirmed
    assert confirmed.hotels[0].cost == 0
    assert confirmed.total_amount == 11000


def test_book_later_hotel_is_zeroed_on_input():
    hotel = HotelBooking(city="Goa", cost=3000, agent_fee=100, booking_status="Book Later")
    assert hotel.cost == 0
    assert hotel.agent_fee == 0


def test_defer_unknown_hotel(booking):
    with pytest.raises(ValidationError):
        booking_costs.defer_hotel(booking, 3)


def test_multiple_segments_and_hotels():
    details = BookingDetails(
        flights=[Segment(cost=4000, agent_fee=250), Segment(mode="Train", cost=900, agent_fee=50)],
        hotels=[HotelBooking(cost=2500, agent_fee=100),
                HotelBooking(cost=1800, agent_fee=100, booking_status=HotelBookingStatus.BOOK_LATER)],
    )
    assert booking_costs.aggregate_total(details) == 7800


def test_negative_cost_rejected(booking):
    bad = booking.model_copy(update={"flights": [Segment(cost=-10)]})
    with pytest.raises(ValidationError) as exc:
        booking_costs.finalize(bad)
    assert exc.value.field == "flights[1].cost"


def test_negative_agent_fee_rejected(booking):
    bad = booking.model_copy(update={"cab": booking.cab.model_copy(update={"agent_fee": -5})})
    with pytest.raises(ValidationError) as exc:
        booking_costs.validate_costs(bad)
    assert exc.value.field == "cab.agentFee"


def test_finalize_stamps_total(booking):
    finalized = booking_costs.finalize(booking.model_copy(update={"total_amount": 1}))
    assert finalized.total_amount == 13200


def test_empty_booking_is_zero():
    assert booking_costs.aggregate_total(BookingDetails()) == 0
