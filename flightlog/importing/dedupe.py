"""
Deduplication matcher for bulk flight imports.

Re-importing an export, or importing a co-traveller's export, must not
create the same flight twice. Instead the importing user's seat is added
to the flight that already exists.

Two flights are "the same real-world flight" when their signatures match:

    date | first-leg origin id | first-leg destination id | flight number |
    registration | first-leg departure | first-leg arrival | leg count

This is a heuristic, not structural equality. Seats, airline and aircraft
are ignored. A missed duplicate is preferred over merging two distinct
flights, so the signature stays strict on times and route.

Each call builds its own indexes from freshly fetched candidates; nothing
is shared between imports.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from flightlog.models import Flight
from flightlog.store import FlightStore
from flightlog.validation.contracts import NormalizedFlight

logger = logging.getLogger(__name__)


@dataclass
class ImportCounts:
    inserted_flights: int = 0
    attached_seats: int = 0


@dataclass
class ImportPlan:
    """Partition of an incoming batch."""
    to_insert: List[NormalizedFlight] = field(default_factory=list)
    seats_to_attach: List[Dict[str, Any]] = field(default_factory=list)
    discarded: int = 0


def _instant_key(value: Optional[datetime]) -> str:
    if value is None:
        return ''
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def flight_signature(flight: Any) -> str:
    """
    Signature of a NormalizedFlight or a stored Flight.

    Both expose ``date`` and ``legs``; legs expose ``from_airport``,
    ``to_airport``, ``flight_number``, ``aircraft_reg``, ``departure`` and
    ``arrival``.
    """
    date_key = flight.date.isoformat() if flight.date else ''
    if not flight.legs:
        return date_key

    first = flight.legs[0]
    return '|'.join([
        date_key,
        str(first.from_airport.id) if first.from_airport else '',
        str(first.to_airport.id) if first.to_airport else '',
        first.flight_number or '',
        first.aircraft_reg or '',
        _instant_key(first.departure),
        _instant_key(first.arrival),
        str(len(flight.legs)),
    ])


def _seat_row_key(row: Dict[str, Any]) -> Tuple:
    if row.get('user_id'):
        return (row['leg_id'], 'user', row['user_id'])
    return (row['leg_id'], 'guest', row.get('guest_name'))


def unique_by_signature(flights: List[NormalizedFlight]) -> List[NormalizedFlight]:
    """Drop repeated signatures within one batch; the first occurrence wins."""
    unique: Dict[str, NormalizedFlight] = {}
    for flight in flights:
        unique.setdefault(flight_signature(flight), flight)
    return list(unique.values())


def unique_seat_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """At most one seat per (leg, user), or per (leg, guest name) for guests."""
    unique: Dict[Tuple, Dict[str, Any]] = {}
    for row in rows:
        unique.setdefault(_seat_row_key(row), row)
    return list(unique.values())


def plan_import(
    incoming: List[NormalizedFlight],
    existing: List[Flight],
    user_seat_flight_ids: Set[int],
) -> ImportPlan:
    """
    Decide what happens to each incoming flight.

    ``incoming`` must already be unique by signature. ``existing`` are the
    candidate stored flights, ``user_seat_flight_ids`` those of them the
    importing user already holds a seat on.
    """
    existing_by_sig: Dict[str, Flight] = {}
    for flight in existing:
        signature = flight_signature(flight)
        current = existing_by_sig.get(signature)
        # The importer's own copy wins over a co-traveller's
        if current is None or (
            current.id not in user_seat_flight_ids and flight.id in user_seat_flight_ids
        ):
            existing_by_sig[signature] = flight

    plan = ImportPlan()
    for flight in incoming:
        match = existing_by_sig.get(flight_signature(flight))
        if match is None:
            plan.to_insert.append(flight)
            continue

        if match.id in user_seat_flight_ids:
            plan.discarded += 1
            continue

        if not match.legs:
            continue
        target_leg = match.legs[0]
        taken = {_seat_row_key({'leg_id': target_leg.id, 'user_id': s.user_id, 'guest_name': s.guest_name})
                 for s in target_leg.seats}

        for seat in flight.legs[0].seats:
            row = {
                'leg_id': target_leg.id,
                'user_id': seat.user_id,
                'guest_name': seat.guest_name,
                'seat': seat.seat,
                'seat_number': seat.seat_number,
                'seat_class': seat.seat_class,
            }
            # Co-travellers already on the stored flight keep their seat
            if _seat_row_key(row) in taken:
                continue
            plan.seats_to_attach.append(row)

    plan.seats_to_attach = unique_seat_rows(plan.seats_to_attach)
    return plan


def _seat_holders(flights: List[NormalizedFlight], user_id: str) -> List[str]:
    holders = {user_id}
    for flight in flights:
        for leg in flight.legs:
            holders.update(seat.user_id for seat in leg.seats if seat.user_id)
    return sorted(holders)


def import_flights(
    store: FlightStore,
    flights: List[NormalizedFlight],
    user_id: str,
    dedupe: bool = True,
) -> ImportCounts:
    """
    Insert a batch of flights for ``user_id``.

    With ``dedupe`` off every flight is inserted as new and every one of
    its seats counts as attached. Otherwise the
    batch is collapsed by signature, matched against stored flights of the
    importing user and co-travellers on the same dates and first-leg
    airports, and split into inserts and seat attachments. Inserts and
    attachments are two separate transactions; a failing attachment does
    not undo the inserts.
    """
    if not dedupe:
        inserted = store.create_many_flights(flights)
        seats = sum(len(leg.seats) for flight in flights for leg in flight.legs)
        return ImportCounts(inserted_flights=inserted, attached_seats=seats)

    unique = unique_by_signature(flights)
    if not unique:
        return ImportCounts()

    dates = {f.date for f in unique}
    origin_ids = {f.legs[0].from_airport.id for f in unique if f.legs and f.legs[0].from_airport}
    dest_ids = {f.legs[0].to_airport.id for f in unique if f.legs and f.legs[0].to_airport}

    existing: List[Flight] = []
    if dates and origin_ids and dest_ids:
        existing = store.find_user_flights(
            _seat_holders(unique, user_id),
            dates=dates,
            origin_ids=origin_ids,
            dest_ids=dest_ids,
        )

    seat_flight_ids = store.find_user_seat_flight_ids(user_id, {f.id for f in existing})
    plan = plan_import(unique, existing, seat_flight_ids)

    logger.info(
        f'Import plan for {user_id}: {len(plan.to_insert)} new, '
        f'{len(plan.seats_to_attach)} seat(s) to attach, {plan.discarded} already present '
        f'({len(flights) - len(unique)} duplicate(s) within the batch)'
    )

    counts = ImportCounts()
    if plan.to_insert:
        counts.inserted_flights = store.create_many_flights(plan.to_insert)
    if plan.seats_to_attach:
        counts.attached_seats = store.insert_seats(plan.seats_to_attach)

    return counts
