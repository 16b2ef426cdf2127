"""
Flight assembler - validates every leg of a flight and derives the
flight-level fields.

Two entry points:
- assemble_flight: interactive save. Strict; the first leg error wins.
- assemble_imported_flight: bulk import. Instants are already known, so
  only ordering, missing durations and the date fallback are filled in.
"""

import datetime
import logging
from typing import List, Optional

from flightlog.errors import OperationError, ValidationResult
from flightlog.models import Flight
from flightlog.validation import datetime_resolver as resolver
from flightlog.validation.contracts import NormalizedFlight, NormalizedLeg, RawFlight
from flightlog.validation.leg import compute_duration, validate_leg

logger = logging.getLogger(__name__)

NOT_OWNER_MESSAGE = 'Flight not found or you do not have a seat on this flight'


def assemble_flight(
    raw: RawFlight,
    acting_user_id: Optional[str] = None,
    existing: Optional[Flight] = None,
) -> ValidationResult:
    """
    Validate all legs in order and build a NormalizedFlight.

    When ``raw.id`` is set this is an edit: ``existing`` must be the stored
    flight and the acting user must hold a seat on one of its legs,
    otherwise a 403 OperationError is returned.
    """
    if not raw.legs:
        return ValidationResult.failure('legs', 'Add at least one leg')

    legs: List[NormalizedLeg] = []
    for index, raw_leg in enumerate(raw.legs):
        result = validate_leg(raw_leg, index)
        if not result.ok:
            return result
        leg = result.value
        leg.order = index
        legs.append(leg)

    # Already validated by the first leg
    flight_date = resolver.parse_local_date(raw.legs[0].primary_departure_date)

    if raw.id is not None:
        if existing is None or not existing.has_seat_for(acting_user_id):
            logger.info(f'User {acting_user_id} refused edit of flight {raw.id}')
            return ValidationResult(error=OperationError(NOT_OWNER_MESSAGE, status=403))

    return ValidationResult(value=NormalizedFlight(
        date=flight_date,
        legs=legs,
        flight_reason=raw.flight_reason,
        note=raw.note,
    ))


def assemble_imported_flight(
    legs: List[NormalizedLeg],
    flight_date: Optional[datetime.date] = None,
    flight_reason: Optional[str] = None,
    note: Optional[str] = None,
) -> Optional[NormalizedFlight]:
    """
    Build a flight from already-parsed import legs.

    Legs keep their given order. A leg without a duration gets one from its
    instants or its airports. When the export carries no date, the first
    leg's departure (scheduled as a fallback) in the origin zone is used.
    Returns None if no date can be derived at all.
    """
    if not legs:
        return None

    for index, leg in enumerate(legs):
        leg.order = index
        if leg.duration is None:
            leg.duration = compute_duration(leg.from_airport, leg.to_airport, leg.departure, leg.arrival)

    if flight_date is None:
        first = legs[0]
        departure = first.departure or first.departure_scheduled
        if departure is None:
            return None
        if first.from_airport is not None:
            flight_date, _ = resolver.decompose(departure, first.from_airport.tz)
        else:
            flight_date = resolver.to_utc(departure).date()

    return NormalizedFlight(
        date=flight_date,
        legs=legs,
        flight_reason=flight_reason,
        note=note,
    )
