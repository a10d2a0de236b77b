"""
Booking Model
Cost breakdown attached to a travel request once the travel desk books it
"""
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models exchanged with the frontend in camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TransportMode(str, Enum):
    FLIGHT = "Flight"
    TRAIN = "Train"


class HotelBookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    BOOK_LATER = "Book Later"


class Segment(CamelModel):
    """One point-to-point transport leg"""
    from_city: str = Field("", alias="from")
    to_city: str = Field("", alias="to")
    mode: TransportMode = TransportMode.FLIGHT
    airline: str = ""
    flight_number: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    cost: float = 0.0
    agent_fee: float = 0.0
    ticket_file: str = ""


class HotelBooking(CamelModel):
    """Hotel stay, only billed once confirmed"""
    city: str = ""
    hotel_name: str = ""
    check_in: str = ""
    check_out: str = ""
    cost: float = 0.0
    agent_fee: float = 0.0
    booking_status: HotelBookingStatus = HotelBookingStatus.CONFIRMED
    booking_file: str = ""

    @model_validator(mode="after")
    def zero_deferred_costs(self):
        # Deferred stays carry no price
        if self.booking_status == HotelBookingStatus.BOOK_LATER:
            self.cost = 0.0
            self.agent_fee = 0.0
        return self

    @property
    def is_confirmed(self) -> bool:
        return self.booking_status == HotelBookingStatus.CONFIRMED


class CabLine(CamelModel):
    cost: float = 0.0
    agent_fee: float = 0.0
    remarks: str = ""


class OtherLine(CamelModel):
    cost: float = 0.0
    agent_fee: float = 0.0
    description: str = ""


class BookingDetails(CamelModel):
    """Finalized cost breakdown persisted with a booked request"""
    flights: List[Segment] = []
    hotels: List[HotelBooking] = []
    cab: CabLine = Field(default_factory=CabLine)
    other: OtherLine = Field(default_factory=OtherLine)
    total_amount: float = 0.0

    class Config:
        json_schema_extra = {
            "example": {
                "flights": [
                    {"from": "Bengaluru", "to": "Mumbai", "mode": "Flight", "airline": "Indigo",
                     "flightNumber": "6E-554", "departureTime": "09:00", "arrivalTime": "10:45",
                     "cost": 5000, "agentFee": 500, "ticketFile": ""}
                ],
                "hotels": [
                    {"city": "Mumbai", "hotelName": "Hyatt Regency", "checkIn": "2026-10-14",
                     "checkOut": "2026-10-16", "cost": 2000, "agentFee": 200,
                     "bookingStatus": "Confirmed", "bookingFile": ""}
                ],
                "cab": {"cost": 0, "agentFee": 0, "remarks": ""},
                "other": {"cost": 0, "agentFee": 0, "description": ""},
                "totalAmount": 0
            }
        }


class CostBreakdown(CamelModel):
    """Per-group subtotals shown next to the booking form"""
    transport: float = 0.0
    hotels: float = 0.0
    cab: float = 0.0
    other: float = 0.0
    total: float = 0.0
    deferred_hotels: int = 0
