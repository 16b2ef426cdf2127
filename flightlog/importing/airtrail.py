"""
AirTrail export parser.

Two file layouts exist:
- version 2: ``{"version": 2, "flights": [{date, flightReason, note, legs: [...]}], "users": [...]}``
- version 1 (no version field): every flight is flat and is its own single leg

Both are normalised here into the version 2 shape, so nothing downstream
branches on the file version. Only structure and enumerations are
checked; resolving airports, airlines and users happens in the pipeline.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List

from flightlog.config import config
from flightlog.errors import ImportFormatError
from flightlog.models import FlightReason, SeatClass, SeatType

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

INSTANT_FIELDS = (
    'departure',
    'arrival',
    'departureScheduled',
    'arrivalScheduled',
    'takeoffScheduled',
    'takeoffActual',
    'landingScheduled',
    'landingActual',
)

LEG_FIELDS = INSTANT_FIELDS + (
    'from',
    'to',
    'duration',
    'flightNumber',
    'aircraftReg',
    'airline',
    'aircraft',
    'departureTerminal',
    'departureGate',
    'arrivalTerminal',
    'arrivalGate',
    'seats',
)

_FLIGHT_REASONS = {r.value for r in FlightReason}
_SEAT_TYPES = {s.value for s in SeatType}
_SEAT_CLASSES = {c.value for c in SeatClass}


@dataclass
class ExportedUser:
    id: str
    username: str
    display_name: str

    @property
    def unknown_key(self) -> str:
        return f'{self.id}|{self.username}|{self.display_name}'


@dataclass
class AirTrailExport:
    flights: List[Dict[str, Any]]
    users: List[ExportedUser]
    version: int = 2


def _check_enum(value: Any, allowed: set, path: str) -> None:
    if value is not None and value not in allowed:
        raise ImportFormatError(f'{path}: invalid value {value!r}')


def _check_leg(leg: Any, path: str) -> Dict[str, Any]:
    if not isinstance(leg, dict):
        raise ImportFormatError(f'{path}: expected an object')

    for side in ('from', 'to'):
        airport = leg.get(side)
        if airport is not None and not (isinstance(airport, dict) and airport.get('icao')):
            raise ImportFormatError(f'{path}.{side}: airport needs an ICAO code')

    seats = leg.get('seats')
    if not isinstance(seats, list) or not seats:
        raise ImportFormatError(f'{path}.seats: add at least one seat')
    for i, seat in enumerate(seats):
        if not isinstance(seat, dict):
            raise ImportFormatError(f'{path}.seats[{i}]: expected an object')
        _check_enum(seat.get('seat'), _SEAT_TYPES, f'{path}.seats[{i}].seat')
        _check_enum(seat.get('seatClass'), _SEAT_CLASSES, f'{path}.seats[{i}].seatClass')

    duration = leg.get('duration')
    if duration is not None and not (isinstance(duration, int) and duration > 0):
        raise ImportFormatError(f'{path}.duration: expected a positive integer')

    return {key: leg.get(key) for key in LEG_FIELDS}


def _check_flight_header(flight: Any, path: str) -> None:
    if not isinstance(flight, dict):
        raise ImportFormatError(f'{path}: expected an object')
    value = flight.get('date')
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ImportFormatError(f'{path}.date: expected YYYY-MM-DD')
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ImportFormatError(f'{path}.date: not a calendar date') from e
    _check_enum(flight.get('flightReason'), _FLIGHT_REASONS, f'{path}.flightReason')
    note = flight.get('note')
    if note is not None and (not isinstance(note, str) or len(note) > 1000):
        raise ImportFormatError(f'{path}.note: expected text of at most 1000 characters')


def _parse_users(raw_users: Any) -> List[ExportedUser]:
    if not isinstance(raw_users, list) or not raw_users:
        raise ImportFormatError('users: at least one user is required')

    users = []
    for i, user in enumerate(raw_users):
        if not isinstance(user, dict) or not user.get('id') or not user.get('username'):
            raise ImportFormatError(f'users[{i}]: id and username are required')
        users.append(ExportedUser(
            id=str(user['id']),
            username=str(user['username']),
            display_name=str(user.get('displayName') or user['username']),
        ))
    return users


def parse_airtrail_export(text: str) -> AirTrailExport:
    """Parse and normalise an AirTrail JSON export."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError('Invalid JSON found in AirTrail file') from e

    if not isinstance(data, dict):
        raise ImportFormatError('Not an AirTrail export')

    raw_flights = data.get('flights')
    if not isinstance(raw_flights, list) or not raw_flights:
        raise ImportFormatError('flights: at least one flight is required')
    if len(raw_flights) > config.importing.max_flights:
        raise ImportFormatError(
            f'flights: {len(raw_flights)} flights exceeds the limit of {config.importing.max_flights}'
        )

    users = _parse_users(data.get('users'))
    version = 2 if data.get('version') == 2 else 1

    flights = []
    for i, raw in enumerate(raw_flights):
        path = f'flights[{i}]'
        _check_flight_header(raw, path)

        if version == 2:
            raw_legs = raw.get('legs')
            if not isinstance(raw_legs, list) or not raw_legs:
                raise ImportFormatError(f'{path}.legs: at least one leg is required')
            legs = [_check_leg(leg, f'{path}.legs[{j}]') for j, leg in enumerate(raw_legs)]
        else:
            if not raw.get('from') or not raw.get('to'):
                raise ImportFormatError(f'{path}: from and to are required')
            legs = [_check_leg(raw, path)]

        flights.append({
            'date': raw['date'],
            'flightReason': raw.get('flightReason'),
            'note': raw.get('note'),
            'legs': legs,
        })

    logger.info(f'Parsed AirTrail v{version} export: {len(flights)} flights, {len(users)} users')
    return AirTrailExport(flights=flights, users=users, version=version)
