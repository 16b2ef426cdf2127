"""
Request payload normalisation for flight saves.

Clients send either the legs shape::

    {"id": 3, "flightReason": "leisure", "note": "...",
     "legs": [{"from": "KJFK", "to": "KLAX", "departure": "2024-05-01",
               "departureTime": "10:00", ..., "seats": [...]}]}

or the legacy flat shape, where the single leg's fields sit at the top
level. Both become one RawFlight. Airport, airline and aircraft codes are
resolved here so the validator only sees reference rows.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from flightlog.errors import PayloadError
from flightlog.models import FlightReason, SeatClass, SeatType
from flightlog.reference import ReferenceLookup
from flightlog.validation.contracts import PAIRED_FIELDS, RawFlight, RawLeg, SeatInput

logger = logging.getLogger(__name__)

USER_PLACEHOLDER = '<USER_ID>'

MAX_LENGTHS = {
    'flightNumber': 10,
    'aircraftReg': 10,
    'departureTerminal': 10,
    'departureGate': 10,
    'arrivalTerminal': 10,
    'arrivalGate': 10,
    'note': 1000,
    'guestName': 50,
    'seatNumber': 5,
}


def _camel(snake: str) -> str:
    head, *rest = snake.split('_')
    return head + ''.join(part.title() for part in rest)


# Date field -> time field, both in client camelCase
_DATE_TIME_FIELDS = {
    'departure': 'departureTime',
    'arrival': 'arrivalTime',
    **{_camel(name): f'{_camel(name)}Time' for name, _ in PAIRED_FIELDS},
}

_TEXT_FIELDS = {
    'departureTerminal': 'departure_terminal',
    'departureGate': 'departure_gate',
    'arrivalTerminal': 'arrival_terminal',
    'arrivalGate': 'arrival_gate',
    'flightNumber': 'flight_number',
    'aircraftReg': 'aircraft_reg',
}

_FLIGHT_REASONS = {r.value for r in FlightReason}
_SEAT_TYPES = {s.value for s in SeatType}
_SEAT_CLASSES = {c.value for c in SeatClass}


def _snake(camel: str) -> str:
    out = []
    for ch in camel:
        if ch.isupper():
            out.append('_')
        out.append(ch.lower())
    return ''.join(out)


def _text(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise PayloadError(path, 'Expected text')
    text = str(value).strip()
    return text or None


def _check_length(value: Optional[str], key: str, path: str) -> None:
    limit = MAX_LENGTHS.get(key)
    if value is not None and limit is not None and len(value) > limit:
        raise PayloadError(path, f'Must be at most {limit} characters')


def _check_choice(value: Any, allowed: set, path: str) -> None:
    if value is not None and (not isinstance(value, str) or value not in allowed):
        raise PayloadError(path, f'Invalid value: {value}')


def _code(value: Any, path: str) -> Optional[str]:
    """Airport/airline/aircraft references may be a bare code or {"icao": ...}."""
    if isinstance(value, dict):
        value = value.get('icao')
    return _text(value, path)


def split_iso_dates(leg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move the time of an ISO datetime given in a date field into its time field.

    ``{"departure": "2024-05-01T10:00"}`` becomes
    ``{"departure": "2024-05-01", "departureTime": "10:00"}``. An explicit
    time field wins over the embedded one.
    """
    out = dict(leg)
    for date_key, time_key in _DATE_TIME_FIELDS.items():
        value = out.get(date_key)
        if not isinstance(value, str) or 'T' not in value:
            continue
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1]
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            # Left for the validator to reject
            continue
        out[date_key] = parsed.date().isoformat()
        if not out.get(time_key):
            out[time_key] = parsed.strftime('%H:%M')
    return out


def canonical_legs(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """The list of leg dicts, whichever shape the client sent."""
    legs = data.get('legs')
    if legs is None:
        return [data]
    if not isinstance(legs, list):
        raise PayloadError('legs', 'Expected a list of legs')
    for index, leg in enumerate(legs):
        if not isinstance(leg, dict):
            raise PayloadError(f'legs[{index}]', 'Expected an object')
    return legs


def build_seats(raw_seats: Any, user_id: str, known_users: Set[str], path: str) -> List[SeatInput]:
    if raw_seats is None:
        raw_seats = [{'userId': USER_PLACEHOLDER}]
    if not isinstance(raw_seats, list):
        raise PayloadError(path, 'Expected a list of seats')

    seats = []
    for index, raw in enumerate(raw_seats):
        seat_path = f'{path}[{index}]'
        if not isinstance(raw, dict):
            raise PayloadError(seat_path, 'Expected an object')

        seat_user = _text(raw.get('userId'), f'{seat_path}.userId')
        if seat_user == USER_PLACEHOLDER:
            seat_user = user_id
        if seat_user and seat_user not in known_users:
            raise PayloadError(f'{seat_path}.userId', 'Unknown user')
        guest_name = _text(raw.get('guestName'), f'{seat_path}.guestName')
        seat_number = _text(raw.get('seatNumber'), f'{seat_path}.seatNumber')
        _check_length(guest_name, 'guestName', f'{seat_path}.guestName')
        _check_length(seat_number, 'seatNumber', f'{seat_path}.seatNumber')
        _check_choice(raw.get('seat'), _SEAT_TYPES, f'{seat_path}.seat')
        _check_choice(raw.get('seatClass'), _SEAT_CLASSES, f'{seat_path}.seatClass')

        seats.append(SeatInput(
            user_id=seat_user,
            guest_name=None if seat_user else guest_name,
            seat=raw.get('seat'),
            seat_number=seat_number,
            seat_class=raw.get('seatClass'),
        ))
    return seats


def build_leg(
    data: Dict[str, Any],
    index: int,
    user_id: str,
    known_users: Set[str],
    lookup: ReferenceLookup,
) -> RawLeg:
    path = f'legs[{index}]'
    data = split_iso_dates(data)

    airports = {}
    for key, label in (('from', 'departure'), ('to', 'arrival')):
        code = _code(data.get(key), f'{path}.{key}')
        airport = lookup.airport_by_icao(code) if code else None
        if code and airport is None:
            raise PayloadError(f'{path}.{key}', f'Invalid {label} airport: {code}')
        airports[key] = airport

    aircraft_code = _code(data.get('aircraft'), f'{path}.aircraft')
    aircraft = lookup.aircraft_by_icao(aircraft_code) if aircraft_code else None
    if aircraft_code and aircraft is None:
        raise PayloadError(f'{path}.aircraft', f'Invalid aircraft: {aircraft_code}')

    airline_code = _code(data.get('airline'), f'{path}.airline')
    airline = lookup.airline_by_icao(airline_code) if airline_code else None
    if airline_code and airline is None:
        raise PayloadError(f'{path}.airline', f'Invalid airline: {airline_code}')

    fields: Dict[str, Any] = {}
    for date_key, time_key in _DATE_TIME_FIELDS.items():
        fields[_snake(date_key)] = _text(data.get(date_key), f'{path}.{date_key}')
        fields[_snake(time_key)] = _text(data.get(time_key), f'{path}.{time_key}')
    for key, attr in _TEXT_FIELDS.items():
        value = _text(data.get(key), f'{path}.{key}')
        _check_length(value, key, f'{path}.{key}')
        fields[attr] = value

    if fields['aircraft_reg']:
        fields['aircraft_reg'] = fields['aircraft_reg'].upper()

    return RawLeg(
        from_airport=airports['from'],
        to_airport=airports['to'],
        aircraft=aircraft,
        airline=airline,
        seats=build_seats(data.get('seats'), user_id, known_users, f'{path}.seats'),
        **fields,
    )


def build_raw_flight(data: Any, user_id: str, lookup: ReferenceLookup) -> RawFlight:
    """
    Turn a save request body into a RawFlight.

    Raises PayloadError for shape problems, over-long fields and unknown
    reference codes.
    """
    if not isinstance(data, dict):
        raise PayloadError('', 'Expected a JSON object')

    note = _text(data.get('note'), 'note')
    _check_length(note, 'note', 'note')
    _check_choice(data.get('flightReason'), _FLIGHT_REASONS, 'flightReason')

    flight_id = data.get('id')
    if flight_id is not None:
        try:
            flight_id = int(flight_id)
        except (TypeError, ValueError):
            raise PayloadError('id', 'Invalid flight id')

    known_users = {u.id for u in lookup.list_users()}
    legs = [
        build_leg(leg, index, user_id, known_users, lookup)
        for index, leg in enumerate(canonical_legs(data))
    ]
    logger.debug(f'Save request from {user_id}: {len(legs)} leg(s), id={flight_id}')
    return RawFlight(
        legs=legs,
        flight_reason=data.get('flightReason'),
        note=note,
        id=flight_id,
    )
