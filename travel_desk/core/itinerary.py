"""
Itinerary Parsing
Builds the city sequence of a trip for display and booking pre-fill.

Three sources are tried in order:

1. booked segments (``booking_details.flights``), the only exact source;
2. multi-city legs, typed or recovered from lines such as
   ``"1. Pune -> Delhi | 2026-10-12 | 09:00 AM"`` in the agent notes;
3. a single or return trip from the origin (typed, or an ``Origin:`` /
   ``From:`` line) and the request destination.

Parsing is best effort and never raises. When nothing can be recovered the
result is a two-node ``Start -> <destination>`` sequence.
"""
import re
from enum import Enum
from typing import Optional, List, Tuple

from travel_desk.models.booking import CamelModel, BookingDetails, Segment, HotelBooking
from travel_desk.models.notes import ItineraryMetadata, ItineraryLeg, MULTI_CITY_LABEL
from travel_desk.models.request import RequestRecord


START_PLACEHOLDER = "Start"
DESTINATION_PLACEHOLDER = "Destination"

USER_SELECTION_SEPARATOR = "\n\n--- USER SELECTION ---\n"
FLEXIBLE_DATES_NOTE = "User has indicated dates are flexible (+/- 2 days)"

_MULTI_CITY_LINE = re.compile(
    r"^\s*(\d+)\.\s*(.+?)\s*->\s*(.+?)\s*\|\s*([^|]*?)\s*(?:\|\s*([^|]*?)\s*)?$",
    re.MULTILINE,
)
_ORIGIN_LINE = re.compile(r"^\s*(?:Origin|From)\s*:\s*(.*?)\s*$", re.IGNORECASE | re.MULTILINE)
_LEADING_LABEL = re.compile(r"^\s*(?:origin|from|to)\s*:\s*", re.IGNORECASE)
_USER_SELECTION = re.compile(r"\s*-*\s*USER SELECTION\s*-*\s*")
_EMPTY_CITY_NAMES = {"origin", "start point"}


class TripType(str, Enum):
    MULTI_CITY = "Multi-City"
    ROUND_TRIP = "Round Trip"
    ONE_WAY = "One-Way"


class ItinerarySource(str, Enum):
    BOOKING = "booking"
    MULTI_CITY = "multi_city"
    FALLBACK = "fallback"


class ItineraryNode(CamelModel):
    name: str
    date: Optional[str] = None
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    placeholder: bool = False


class Itinerary(CamelModel):
    source: ItinerarySource
    trip_type: TripType
    nodes: List[ItineraryNode]

    @property
    def cities(self) -> List[str]:
        return [node.name for node in self.nodes]


def clean_city(name: Optional[str]) -> str:
    """
    Reduce a location string to a bare city name.

    "Mumbai, Maharashtra" -> "Mumbai", "Origin: Pune" -> "Pune".
    Returns "" for unknown locations ("origin", "start point").
    """
    if not name:
        return ""
    city = name.split(",", 1)[0]
    city = _LEADING_LABEL.sub("", city).strip()
    if city.lower() in _EMPTY_CITY_NAMES:
        return ""
    return city


def split_agent_notes(notes: Optional[str]) -> Tuple[str, Optional[str]]:
    """Split legacy notes into (agent text, employee reply)"""
    if not notes:
        return "", None
    parts = _USER_SELECTION.split(notes, maxsplit=1)
    if len(parts) == 1:
        return notes.strip(), None
    return parts[0].strip(), parts[1].strip()


def append_user_selection(notes: Optional[str], reply: str) -> str:
    prior = (notes or "").rstrip()
    return f"{prior}{USER_SELECTION_SEPARATOR}{reply.strip()}"


def render_itinerary_notes(metadata: ItineraryMetadata) -> str:
    """Write itinerary metadata in the legacy notes text format"""
    lines = []
    if metadata.is_multi_city:
        lines.append(f"{MULTI_CITY_LABEL}:")
        for i, leg in enumerate(metadata.legs, start=1):
            lines.append(f"{i}. {leg.from_city} -> {leg.to_city} | {leg.date} | {leg.time}")
    else:
        if metadata.origin:
            lines.append(f"Origin: {metadata.origin}")
        if metadata.round_trip:
            lines.append("Trip: Round Trip (return to origin)")
    if metadata.flexible_dates:
        lines.append(FLEXIBLE_DATES_NOTE)
    if metadata.remarks:
        lines.append(metadata.remarks)
    return "\n".join(lines)


def parse_itinerary_metadata(notes: Optional[str]) -> ItineraryMetadata:
    """Recover itinerary metadata from legacy notes text"""
    if not notes:
        return ItineraryMetadata()

    legs = [
        ItineraryLeg(from_city=m.group(2), to_city=m.group(3), date=m.group(4) or "", time=m.group(5) or "")
        for m in _MULTI_CITY_LINE.finditer(notes)
    ]
    origin_match = _ORIGIN_LINE.search(notes)
    origin = origin_match.group(1) if origin_match else None
    if origin is None and legs:
        origin = legs[0].from_city

    lowered = notes.lower()
    return ItineraryMetadata(
        origin=origin,
        legs=legs,
        round_trip=_mentions_return(lowered),
        flexible_dates="flexible" in lowered,
    )


def itinerary_metadata(record: RequestRecord) -> ItineraryMetadata:
    if record.itinerary is not None:
        return record.itinerary
    return parse_itinerary_metadata(record.agent_notes)


def _notes_text(record: RequestRecord) -> str:
    if record.itinerary is not None:
        return render_itinerary_notes(record.itinerary)
    return record.agent_notes or ""


def _mentions_return(lowered_notes: str) -> bool:
    return "return" in lowered_notes or "round trip" in lowered_notes


def classify_trip(record: RequestRecord) -> TripType:
    """
    Badge heuristic. Precedence: multi-city, then round trip, then one-way.

    A one-way trip spanning several days is reported as a round trip, and
    any notes mentioning "return" make a round trip.
    """
    notes = _notes_text(record).lower()
    if "multi city" in notes or ("->" in notes and "origin" not in notes):
        return TripType.MULTI_CITY
    if _mentions_return(notes) or record.start_date != record.end_date:
        return TripType.ROUND_TRIP
    return TripType.ONE_WAY


def _node(name: Optional[str], placeholder_name: str, **kwargs) -> ItineraryNode:
    city = clean_city(name)
    if not city:
        return ItineraryNode(name=placeholder_name, placeholder=True, **kwargs)
    return ItineraryNode(name=city, **kwargs)


def _from_segments(flights: List[Segment]) -> List[ItineraryNode]:
    first = flights[0]
    nodes = [_node(first.from_city, START_PLACEHOLDER, departure_time=first.departure_time or None)]
    for i, segment in enumerate(flights):
        following = flights[i + 1] if i + 1 < len(flights) else None
        nodes.append(
            _node(
                segment.to_city,
                DESTINATION_PLACEHOLDER,
                arrival_time=segment.arrival_time or None,
                departure_time=(following.departure_time or None) if following else None,
            )
        )
    return nodes


def _from_legs(legs: List[ItineraryLeg]) -> List[ItineraryNode]:
    first = legs[0]
    nodes = [_node(first.from_city, START_PLACEHOLDER, date=first.date or None, departure_time=first.time or None)]
    for i, leg in enumerate(legs):
        following = legs[i + 1] if i + 1 < len(legs) else None
        nodes.append(
            _node(
                leg.to_city,
                DESTINATION_PLACEHOLDER,
                date=leg.date or None,
                departure_time=(following.time or None) if following else None,
            )
        )
    return nodes


def _single_trip(record: RequestRecord, metadata: ItineraryMetadata) -> List[ItineraryNode]:
    origin = _node(metadata.origin, START_PLACEHOLDER, date=record.start_date, departure_time=record.start_time)
    destination = _node(record.destination, DESTINATION_PLACEHOLDER, date=record.start_date)
    nodes = [origin, destination]

    notes = _notes_text(record).lower()
    if metadata.round_trip or _mentions_return(notes) or record.start_date != record.end_date:
        nodes.append(origin.model_copy(update={"date": record.end_date, "departure_time": None,
                                               "arrival_time": record.end_time}))
    return nodes


def parse_itinerary(record: RequestRecord) -> Itinerary:
    """Derive the displayable city sequence of a request"""
    trip_type = classify_trip(record)

    if record.booking_details is not None and record.booking_details.flights:
        return Itinerary(source=ItinerarySource.BOOKING, trip_type=trip_type,
                         nodes=_from_segments(record.booking_details.flights))

    metadata = itinerary_metadata(record)
    if metadata.legs:
        return Itinerary(source=ItinerarySource.MULTI_CITY, trip_type=trip_type,
                         nodes=_from_legs(metadata.legs))

    return Itinerary(source=ItinerarySource.FALLBACK, trip_type=trip_type,
                     nodes=_single_trip(record, metadata))


def booking_prefill(record: RequestRecord) -> BookingDetails:
    """
    Initial booking form for the travel desk: one segment per itinerary edge
    and one hotel per city stayed in.
    """
    if record.booking_details is not None:
        return record.booking_details

    nodes = parse_itinerary(record).nodes
    flights = []
    for here, there in zip(nodes, nodes[1:]):
        flights.append(Segment(
            from_city="" if here.placeholder else here.name,
            to_city="" if there.placeholder else there.name,
            departure_time=here.departure_time or "",
        ))

    hotels = []
    origin_name = nodes[0].name
    stops = nodes[1:]
    for i, node in enumerate(stops):
        if node.name == origin_name and i == len(stops) - 1:
            break
        check_out = stops[i + 1].date if i + 1 < len(stops) and stops[i + 1].date else record.end_date
        hotels.append(HotelBooking(
            city="" if node.placeholder else node.name,
            check_in=node.date or record.start_date,
            check_out=check_out or "",
        ))

    return BookingDetails(flights=flights, hotels=hotels)
