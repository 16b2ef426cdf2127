"""
Leg validator - turns one raw leg into a normalized, persistable leg.

Validation steps:
1. A departure date (actual or scheduled) is required
2. Dates before the minimum epoch are rejected
3. Each (date, time) pair is merged in its airport's zone: origin for
   departure/takeoff fields, destination for arrival/landing fields.
   A date without a time stays date-only and is not stored as an instant.
4. An arrival date needs an arrival time; an arrival time without a date
   lands on the departure date
5. Arrival may not precede departure
6. Duration is measured when both instants are known, otherwise estimated
   from great-circle distance

The first problem found is returned as a PathError on ``legs[i].<field>``.
Nothing here touches the database.
"""

import dataclasses
import logging
from datetime import date, datetime
from typing import Dict, Optional

from flightlog.errors import FieldValidationError, InvalidTimeFormat, ValidationResult
from flightlog.geo import distance_between, estimate_duration
from flightlog.validation import datetime_resolver as resolver
from flightlog.validation.contracts import (
    ARRIVAL_SIDE, DEPARTURE_SIDE, PAIRED_FIELDS, NormalizedLeg, RawLeg,
)

logger = logging.getLogger(__name__)

# Error paths use the client's camelCase form names
_PATH_NAMES = {
    'from_airport': 'from',
    'to_airport': 'to',
}


def _path_name(field_name: str) -> str:
    if field_name in _PATH_NAMES:
        return _PATH_NAMES[field_name]
    head, *rest = field_name.split('_')
    return head + ''.join(part.title() for part in rest)


class _LegChecker:
    """Holds the leg being validated and its index for error paths."""

    def __init__(self, raw: RawLeg, index: int):
        self.raw = raw
        self.index = index

    def fail(self, field_name: str, message: str) -> FieldValidationError:
        return FieldValidationError(f'legs[{self.index}].{_path_name(field_name)}', message)

    def zone_for(self, side: str) -> str:
        airport = self.raw.from_airport if side == DEPARTURE_SIDE else self.raw.to_airport
        return airport.tz

    def merge_pair(
        self,
        local_date: Optional[str],
        local_time: Optional[str],
        side: str,
        time_field: str,
    ) -> Optional[datetime]:
        """Merge a date/time pair; date-only or time-only input yields None."""
        if not local_date or not local_time:
            return None
        try:
            return resolver.merge(local_date, local_time, self.zone_for(side))
        except InvalidTimeFormat:
            raise self.fail(time_field, 'Invalid time format')

    def check_airports(self) -> None:
        if self.raw.from_airport is None:
            raise self.fail('from_airport', 'Select a departure airport')
        if self.raw.to_airport is None:
            raise self.fail('to_airport', 'Select an arrival airport')

    def check_seats(self) -> None:
        seats = self.raw.seats
        if not seats:
            raise self.fail('seats', 'Add at least one seat')
        for seat in seats:
            if not seat.user_id and not seat.guest_name:
                raise self.fail('seats', 'Select a user or add a guest name')
        if not any(seat.user_id for seat in seats):
            raise self.fail('seats', 'At least one seat must be assigned to a user')

        seen = set()
        for seat in seats:
            if seat.key() in seen:
                raise self.fail('seats', 'The same traveller cannot have two seats on one leg')
            seen.add(seat.key())

    def primary_departure_date(self) -> date:
        raw = self.raw
        if not raw.departure and not raw.departure_scheduled:
            raise self.fail('departure', 'Select a departure date')

        field_name = 'departure' if raw.departure else 'departure_scheduled'
        try:
            departure_date = resolver.parse_local_date(raw.primary_departure_date)
        except InvalidTimeFormat:
            raise self.fail(field_name, 'Invalid date')

        if resolver.is_before_minimum_epoch(departure_date):
            raise self.fail(field_name, 'Too far in the past')

        return departure_date

    def run(self) -> NormalizedLeg:
        raw = self.raw
        self.check_airports()
        departure_date = self.primary_departure_date()

        departure = self.merge_pair(raw.departure, raw.departure_time, DEPARTURE_SIDE, 'departure_time')

        paired: Dict[str, Optional[datetime]] = {}
        for name, side in PAIRED_FIELDS:
            if side != DEPARTURE_SIDE:
                continue
            paired[name] = self.merge_pair(
                getattr(raw, name), getattr(raw, f'{name}_time'), side, f'{name}_time'
            )

        arrival_date = raw.arrival
        if arrival_date:
            try:
                parsed_arrival = resolver.parse_local_date(arrival_date)
            except InvalidTimeFormat:
                raise self.fail('arrival', 'Invalid date')
            if resolver.is_before_minimum_epoch(parsed_arrival):
                raise self.fail('arrival', 'Too far in the past')
            if not raw.arrival_time:
                raise self.fail('arrival', 'Cannot have arrival date without time')

        if raw.arrival_time and not arrival_date:
            # Same-day arrival convenience
            arrival_date = departure_date.isoformat()

        arrival = self.merge_pair(arrival_date, raw.arrival_time, ARRIVAL_SIDE, 'arrival_time')

        for name, side in PAIRED_FIELDS:
            if side != ARRIVAL_SIDE:
                continue
            paired[name] = self.merge_pair(
                getattr(raw, name), getattr(raw, f'{name}_time'), side, f'{name}_time'
            )

        if departure and arrival and arrival < departure:
            raise self.fail('arrival', 'Arrival must be after departure')

        self.check_seats()

        duration = compute_duration(raw.from_airport, raw.to_airport, departure, arrival)

        return NormalizedLeg(
            from_airport=raw.from_airport,
            to_airport=raw.to_airport,
            order=self.index,
            departure=resolver.to_utc(departure) if departure else None,
            arrival=resolver.to_utc(arrival) if arrival else None,
            duration=duration,
            departure_terminal=raw.departure_terminal,
            departure_gate=raw.departure_gate,
            arrival_terminal=raw.arrival_terminal,
            arrival_gate=raw.arrival_gate,
            flight_number=raw.flight_number,
            aircraft_reg=raw.aircraft_reg,
            aircraft=raw.aircraft,
            airline=raw.airline,
            seats=[dataclasses.replace(seat) for seat in raw.seats],
            **{
                name: resolver.to_utc(value) if value else None
                for name, value in paired.items()
            },
        )


def compute_duration(from_airport, to_airport, departure, arrival) -> Optional[int]:
    """
    Seconds between departure and arrival, or a distance-based estimate.

    Returns None when neither is possible (unknown or identical airports
    without both times).
    """
    if departure and arrival:
        return int((arrival - departure).total_seconds())

    if from_airport is None or to_airport is None or from_airport.id == to_airport.id:
        return None

    return estimate_duration(distance_between(from_airport, to_airport))


def validate_leg(raw: RawLeg, index: int) -> ValidationResult:
    """
    Validate one leg.

    Returns a ValidationResult holding either a NormalizedLeg or a
    PathError for the first offending field.
    """
    checker = _LegChecker(raw, index)
    try:
        leg = checker.run()
    except FieldValidationError as e:
        logger.debug(f'Leg {index} rejected: {e}')
        return ValidationResult.failure(e.path, e.message)

    return ValidationResult(value=leg)
