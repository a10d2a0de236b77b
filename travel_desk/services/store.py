"""
Request Store
Persistence interface consumed by the workflow, and its MongoDB implementation
"""
import logging
from datetime import datetime
from typing import List, Optional, Protocol

from beanie import UpdateResponse
from beanie.operators import In, Inc, Set
from pymongo.errors import PyMongoError

from travel_desk.config import settings
from travel_desk.core.exceptions import ConcurrentModification, PersistenceError, RequestNotFound
from travel_desk.core.stats import AggregateStats, APPROVED_STATUSES, month_bounds, percent_change
from travel_desk.models.request import (
    RequestCounter,
    RequestRecord,
    RequestStatus,
    TravelRequestDocument,
)

logger = logging.getLogger(__name__)

_STORED_FIELDS = [name for name in RequestRecord.model_fields if name != "id"]


class RequestStore(Protocol):
    """
    CRUD persistence for travel requests.

    Implementations may also provide ``get_aggregate_stats(now)``; callers
    fall back to computing the numbers from ``list_requests`` when it is
    missing or fails.
    """

    async def list_requests(self) -> List[RequestRecord]: ...

    async def get_request(self, request_id: str) -> Optional[RequestRecord]: ...

    async def create_request(self, record: RequestRecord) -> RequestRecord: ...

    async def update_request(self, record: RequestRecord, expected_version: int) -> RequestRecord: ...

    async def delete_request(self, request_id: str) -> None: ...


class BeanieRequestStore:
    """RequestStore backed by the travel_requests collection"""

    async def next_request_id(self, now: Optional[datetime] = None) -> str:
        """TR-YYYYMMDD-NNNN, numbered per day"""
        today = (now or datetime.utcnow()).strftime("%Y%m%d")
        counter = await RequestCounter.find_one(RequestCounter.date == today).upsert(
            Inc({RequestCounter.last_counter: 1}),
            on_insert=RequestCounter(date=today, last_counter=1),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        return f"{settings.REQUEST_ID_PREFIX}-{today}-{counter.last_counter:04d}"

    async def list_requests(self) -> List[RequestRecord]:
        try:
            docs = await TravelRequestDocument.find_all().sort("-submitted_date").to_list()
        except PyMongoError as e:
            raise PersistenceError(None, cause=e)
        return [doc.to_record() for doc in docs]

    async def get_request(self, request_id: str) -> Optional[RequestRecord]:
        try:
            doc = await TravelRequestDocument.find_one(TravelRequestDocument.request_id == request_id)
        except PyMongoError as e:
            raise PersistenceError(request_id, cause=e)
        return doc.to_record() if doc else None

    async def create_request(self, record: RequestRecord) -> RequestRecord:
        try:
            request_id = await self.next_request_id(record.submitted_date)
            doc = TravelRequestDocument.from_record(record.model_copy(update={"id": request_id}))
            await doc.insert()
        except PyMongoError as e:
            raise PersistenceError(None, attempted=record, cause=e)
        logger.info("Stored travel request %s", request_id)
        return doc.to_record()

    async def update_request(self, record: RequestRecord, expected_version: int) -> RequestRecord:
        """Write ``record`` only if the stored version is still ``expected_version``"""
        changes = {getattr(TravelRequestDocument, name): getattr(record, name) for name in _STORED_FIELDS}
        try:
            doc = await TravelRequestDocument.find_one(
                TravelRequestDocument.request_id == record.id,
                TravelRequestDocument.version == expected_version,
            ).update(Set(changes), response_type=UpdateResponse.NEW_DOCUMENT)

            if doc is None:
                exists = await TravelRequestDocument.find_one(TravelRequestDocument.request_id == record.id)
                if exists is None:
                    raise RequestNotFound(record.id)
                raise ConcurrentModification(record.id, expected_version)
        except PyMongoError as e:
            raise PersistenceError(record.id, attempted=record, cause=e)
        return doc.to_record()

    async def delete_request(self, request_id: str) -> None:
        try:
            doc = await TravelRequestDocument.find_one(TravelRequestDocument.request_id == request_id)
            if doc is None:
                raise RequestNotFound(request_id)
            await doc.delete()
        except PyMongoError as e:
            raise PersistenceError(request_id, cause=e)
        logger.info("Deleted travel request %s", request_id)

    async def get_aggregate_stats(self, now: Optional[datetime] = None) -> AggregateStats:
        try:
            return await self._count_stats(now)
        except PyMongoError as e:
            raise PersistenceError(None, cause=e)

    async def _count_stats(self, now: Optional[datetime]) -> AggregateStats:
        previous_start, current_start = month_bounds(now or datetime.utcnow())
        current = await TravelRequestDocument.find(TravelRequestDocument.submitted_date >= current_start).count()
        previous = await TravelRequestDocument.find(
            TravelRequestDocument.submitted_date >= previous_start,
            TravelRequestDocument.submitted_date < current_start,
        ).count()

        return AggregateStats(
            total=current,
            total_all_time=await TravelRequestDocument.find_all().count(),
            approved=await TravelRequestDocument.find(
                In(TravelRequestDocument.status, list(APPROVED_STATUSES))
            ).count(),
            pending=await TravelRequestDocument.find(
                In(TravelRequestDocument.status, [s for s in RequestStatus if s.is_pending])
            ).count(),
            rejected=await TravelRequestDocument.find(
                TravelRequestDocument.status == RequestStatus.REJECTED
            ).count(),
            percent_change=percent_change(current, previous),
        )
