"""
Travel Request Model
Database schema and API schemas for travel requests
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import Field
from beanie import Document, Indexed

from travel_desk.models.booking import CamelModel, BookingDetails
from travel_desk.models.notes import ItineraryMetadata, ItineraryLeg, AgentOptions, EmployeeReply


class RequestStatus(str, Enum):
    """Approval stages of a travel request"""
    PENDING_MANAGER = "Pending Manager"
    PENDING_ADMIN = "Pending Admin"
    PROCESSING = "Processing (Agent)"
    ACTION_REQUIRED = "Action Required"
    BOOKED = "Booked"
    REJECTED = "Rejected"

    @property
    def is_pending(self) -> bool:
        return "Pending" in self.value


class TravelType(str, Enum):
    DOMESTIC = "Domestic"
    INTERNATIONAL = "International"


class StatusChange(CamelModel):
    """One applied transition, kept for the request timeline"""
    from_status: RequestStatus
    to_status: RequestStatus
    action: str
    actor: Optional[str] = None
    at: datetime = Field(default_factory=datetime.utcnow)


class RequestRecord(CamelModel):
    """
    A travel request as seen by the workflow.

    Employee name, avatar and department are a snapshot taken at submission
    and are not refreshed when the profile changes.
    """
    id: Optional[str] = None
    destination: str
    start_date: str
    end_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING_MANAGER
    amount: float = 0.0

    employee_id: Optional[str] = None
    employee_name: str
    employee_avatar: Optional[str] = None
    department: str
    type: TravelType = TravelType.DOMESTIC
    purpose: Optional[str] = None

    # Legacy free-text notes, kept in sync with the typed fields below
    agent_notes: Optional[str] = None
    itinerary: Optional[ItineraryMetadata] = None
    agent_options: Optional[AgentOptions] = None
    employee_reply: Optional[EmployeeReply] = None

    rejection_reason: Optional[str] = None
    booking_details: Optional[BookingDetails] = None
    history: List[StatusChange] = []

    submitted_date: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    version: int = 0

    class Config:
        json_schema_extra = {
            "example": {
                "id": "TR-20261012-0001",
                "destination": "Mumbai, Maharashtra",
                "startDate": "2026-10-14",
                "endDate": "2026-10-16",
                "startTime": "09:00 AM",
                "endTime": "12:00 PM",
                "status": "Pending Manager",
                "amount": 0,
                "employeeName": "Alex Morgan",
                "department": "Product",
                "type": "Domestic",
                "agentNotes": "Origin: Bengaluru, Karnataka"
            }
        }


class TravelRequestCreate(CamelModel):
    """Schema for submitting a travel request"""
    destination: str = ""
    start_date: str
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: TravelType = TravelType.DOMESTIC
    purpose: Optional[str] = None
    department: Optional[str] = None
    origin: Optional[str] = None
    legs: List[ItineraryLeg] = []
    round_trip: bool = False
    flexible_dates: bool = False
    remarks: Optional[str] = None


class StatusUpdate(CamelModel):
    """Generic transition request: target status plus optional side payload"""
    status: RequestStatus
    agent_notes: Optional[str] = None
    booking_details: Optional[BookingDetails] = None
    amount: Optional[float] = None
    rejection_reason: Optional[str] = None
    expected_version: Optional[int] = None


class RejectPayload(CamelModel):
    reason: str
    expected_version: Optional[int] = None


class OptionsPayload(CamelModel):
    """Agent options, either one block of text or a list of options"""
    notes: Optional[str] = None
    options: List[str] = []
    expected_version: Optional[int] = None

    def as_text(self) -> str:
        if self.notes:
            return self.notes
        return "\n".join(f"{i}. {option}" for i, option in enumerate(self.options, start=1))


class BookingPayload(CamelModel):
    booking_details: BookingDetails
    amount: Optional[float] = None
    expected_version: Optional[int] = None


class ReplyPayload(CamelModel):
    reply: str
    expected_version: Optional[int] = None


class ActionPayload(CamelModel):
    expected_version: Optional[int] = None


class TravelRequestDocument(Document):
    """Stored travel request"""

    request_id: Indexed(str, unique=True)
    destination: str
    start_date: str
    end_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING_MANAGER
    amount: float = 0.0

    employee_id: Optional[str] = None
    employee_name: str
    employee_avatar: Optional[str] = None
    department: str
    type: TravelType = TravelType.DOMESTIC
    purpose: Optional[str] = None

    agent_notes: Optional[str] = None
    itinerary: Optional[ItineraryMetadata] = None
    agent_options: Optional[AgentOptions] = None
    employee_reply: Optional[EmployeeReply] = None

    rejection_reason: Optional[str] = None
    booking_details: Optional[BookingDetails] = None
    history: List[StatusChange] = []

    submitted_date: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    version: int = 0

    class Settings:
        name = "travel_requests"
        indexes = [
            "status",
            "employee_id",
            "submitted_date",
        ]

    @classmethod
    def from_record(cls, record: RequestRecord) -> "TravelRequestDocument":
        return cls(request_id=record.id, **record.model_dump(exclude={"id"}))

    def to_record(self) -> RequestRecord:
        data = self.model_dump(exclude={"id", "revision_id", "request_id"})
        return RequestRecord.model_validate({**data, "id": self.request_id})


class RequestCounter(Document):
    """Per-day sequence used to build request ids"""
    date: Indexed(str, unique=True)
    last_counter: int = 0

    class Settings:
        name = "request_counters"
