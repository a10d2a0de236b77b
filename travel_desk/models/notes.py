"""
Request Notes Model
Typed replacements for the free-text agent notes field
"""
from datetime import datetime
from typing import Optional, List
from pydantic import Field

from travel_desk.models.booking import CamelModel


MULTI_CITY_LABEL = "Multi City Trip"


class ItineraryLeg(CamelModel):
    """One leg of a multi-city route as entered by the employee"""
    from_city: str = Field("", alias="from")
    to_city: str = Field("", alias="to")
    date: str = ""
    time: str = ""


class ItineraryMetadata(CamelModel):
    """Route information captured when the request is created"""
    origin: Optional[str] = None
    legs: List[ItineraryLeg] = []
    round_trip: bool = False
    flexible_dates: bool = False
    remarks: Optional[str] = None

    @property
    def is_multi_city(self) -> bool:
        return len(self.legs) > 0


class AgentOptions(CamelModel):
    """Options text the travel desk sends for the employee to choose from"""
    text: str
    sent_at: datetime = Field(default_factory=datetime.utcnow)


class EmployeeReply(CamelModel):
    """Employee's answer to the agent options"""
    text: str
    replied_at: datetime = Field(default_factory=datetime.utcnow)
