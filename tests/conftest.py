from datetime import datetime
from typing import Dict, List, Optional

import pytest

from travel_desk.core.exceptions import ConcurrentModification, PersistenceError, RequestNotFound
from travel_desk.models.booking import BookingDetails, CabLine, HotelBooking, OtherLine, Segment
from travel_desk.models.request import RequestRecord, RequestStatus
from travel_desk.models.user import SessionContext, UserRole


class InMemoryRequestStore:
    """RequestStore keeping records in a dict, with injectable write failures"""

    def __init__(self, records: Optional[List[RequestRecord]] = None):
        self.records: Dict[str, RequestRecord] = {}
        self.fail_writes = 0
        self.write_attempts = 0
        self.counter = 0
        for record in records or []:
            self.records[record.id] = record

    def _maybe_fail(self, request_id):
        self.write_attempts += 1
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise PersistenceError(request_id, cause=ConnectionError("store unavailable"))

    async def list_requests(self) -> List[RequestRecord]:
        return sorted(self.records.values(), key=lambda r: r.submitted_date, reverse=True)

    async def get_request(self, request_id: str) -> Optional[RequestRecord]:
        return self.records.get(request_id)

    async def create_request(self, record: RequestRecord) -> RequestRecord:
        self._maybe_fail(None)
        self.counter += 1
        saved = record.model_copy(
            update={"id": f"TR-{record.submitted_date:%Y%m%d}-{self.counter:04d}"}
        )
        self.records[saved.id] = saved
        return saved

    async def update_request(self, record: RequestRecord, expected_version: int) -> RequestRecord:
        self._maybe_fail(record.id)
        stored = self.records.get(record.id)
        if stored is None:
            raise RequestNotFound(record.id)
        if stored.version != expected_version:
            raise ConcurrentModification(record.id, expected_version)
        self.records[record.id] = record
        return record

    async def delete_request(self, request_id: str) -> None:
        if request_id not in self.records:
            raise RequestNotFound(request_id)
        del self.records[request_id]


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def publish(self, recipient_ids, message, request_id=None):
        self.sent.append((list(recipient_ids), message, request_id))


def make_record(**overrides) -> RequestRecord:
    data = dict(
        id="TR-20261012-0001",
        destination="Mumbai, Maharashtra",
        start_date="2026-10-14",
        end_date="2026-10-14",
        status=RequestStatus.PENDING_MANAGER,
        employee_id="USR-EMP",
        employee_name="Alex Morgan",
        department="Product",
        submitted_date=datetime(2026, 10, 12, 9, 30),
    )
    data.update(overrides)
    return RequestRecord(**data)


def make_session(role: UserRole, user_id: Optional[str] = None, name: str = "Test User") -> SessionContext:
    return SessionContext(user_id=user_id or f"USR-{role.value}", name=name, role=role, department="Product")


@pytest.fixture
def employee():
    return make_session(UserRole.EMPLOYEE, user_id="USR-EMP", name="Alex Morgan")


@pytest.fixture
def other_employee():
    return make_session(UserRole.EMPLOYEE, user_id="USR-OTHER", name="Chris Doe")


@pytest.fixture
def manager():
    return make_session(UserRole.MANAGER, name="James Wilson")


@pytest.fixture
def admin():
    return make_session(UserRole.ADMIN, name="Sarah Jenkins")


@pytest.fixture
def super_admin():
    return make_session(UserRole.SUPER_ADMIN, name="Super Admin")


@pytest.fixture
def agent():
    return make_session(UserRole.TRAVEL_AGENT, name="Travel Desk")


@pytest.fixture
def record():
    return make_record()


@pytest.fixture
def booking():
    """Flight 5000+500, hotel 2000+200, cab 1500+0, other 4000+0 = 13200"""
    return BookingDetails(
        flights=[Segment(from_city="Bengaluru", to_city="Mumbai", cost=5000, agent_fee=500,
                         departure_time="09:00", arrival_time="10:45")],
        hotels=[HotelBooking(city="Mumbai", hotel_name="Hyatt Regency", check_in="2026-10-14",
                             check_out="2026-10-16", cost=2000, agent_fee=200)],
        cab=CabLine(cost=1500, agent_fee=0),
        other=OtherLine(cost=4000, agent_fee=0, description="Visa"),
    )


@pytest.fixture
def store(record):
    return InMemoryRequestStore([record])


@pytest.fixture
def notifier():
    return RecordingNotifier()
