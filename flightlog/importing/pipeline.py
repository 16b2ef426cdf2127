"""
Import pipeline - turns a parsed export into stored flights.

Pipeline stages:
1. Users: map every exported user to a local account (explicit mapping
   first, then by username). Unmapped users travel as named guests.
2. Legs: resolve airports, airlines and aircraft (explicit mapping first,
   then ICAO code, then name for airlines and aircraft). Instants are
   parsed leniently: an unreadable value is dropped, not fatal.
3. Flights: order legs, fill missing durations, derive missing dates.
   Flights whose airports cannot be resolved are skipped and reported.
4. Store: hand the batch to the deduplication matcher.

Nothing is written before stage 4, so an export that fails to resolve
leaves the database untouched.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from flightlog.config import config
from flightlog.errors import InvalidTimeFormat
from flightlog.importing.airtrail import INSTANT_FIELDS, AirTrailExport, ExportedUser
from flightlog.importing.dedupe import import_flights
from flightlog.reference import (
    AircraftInfo, AirlineInfo, AirportInfo, ReferenceLookup, UserInfo,
)
from flightlog.store import FlightStore
from flightlog.validation import datetime_resolver as resolver
from flightlog.validation.contracts import NormalizedFlight, NormalizedLeg, SeatInput
from flightlog.validation.flight import assemble_imported_flight

logger = logging.getLogger(__name__)

# Export keys to NormalizedLeg attribute names
_INSTANT_ATTRS = {
    'departure': 'departure',
    'arrival': 'arrival',
    'departureScheduled': 'departure_scheduled',
    'arrivalScheduled': 'arrival_scheduled',
    'takeoffScheduled': 'takeoff_scheduled',
    'takeoffActual': 'takeoff_actual',
    'landingScheduled': 'landing_scheduled',
    'landingActual': 'landing_actual',
}


@dataclass
class ImportOptions:
    dedupe: bool = config.importing.dedupe_default
    # ICAO code -> local airport / airline id
    airport_mapping: Dict[str, int] = field(default_factory=dict)
    airline_mapping: Dict[str, int] = field(default_factory=dict)
    # Exported user id -> local user id
    user_mapping: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ImportOptions':
        data = data or {}
        return cls(
            dedupe=bool(data.get('dedupe', config.importing.dedupe_default)),
            airport_mapping={k.upper(): int(v) for k, v in (data.get('airportMapping') or {}).items()},
            airline_mapping={k.upper(): int(v) for k, v in (data.get('airlineMapping') or {}).items()},
            user_mapping={str(k): str(v) for k, v in (data.get('userMapping') or {}).items()},
        )


@dataclass
class ImportResult:
    inserted_flights: int = 0
    attached_seats: int = 0
    skipped_flights: int = 0
    # Code (or user key) -> indices of the affected flights in the export
    unknown_airports: Dict[str, List[int]] = field(default_factory=dict)
    unknown_airlines: Dict[str, List[int]] = field(default_factory=dict)
    unknown_users: Dict[str, List[int]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'insertedFlights': self.inserted_flights,
            'attachedSeats': self.attached_seats,
            'skippedFlights': self.skipped_flights,
            'unknownAirports': self.unknown_airports,
            'unknownAirlines': self.unknown_airlines,
            'unknownUsers': self.unknown_users,
        }


def _note(unknown: Dict[str, List[int]], key: str, flight_index: int) -> None:
    indices = unknown.setdefault(key, [])
    if not indices or indices[-1] != flight_index:
        indices.append(flight_index)


def _parse_tolerant(value: Any, path: str) -> Optional[datetime.datetime]:
    try:
        return resolver.parse_instant(value)
    except InvalidTimeFormat:
        logger.warning(f'Dropping unreadable instant at {path}: {value!r}')
        return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ImportPipeline:
    """
    Resolves an export against local reference data and stores it.

    One pipeline may run many imports; no state is kept between runs.
    """

    def __init__(self, store: FlightStore, lookup: ReferenceLookup):
        self.store = store
        self.lookup = lookup

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve_users(self, users: List[ExportedUser], options: ImportOptions) -> Dict[str, UserInfo]:
        """Map exported user ids to local users. Unmapped ids are absent."""
        local = self.lookup.list_users()
        by_id = {u.id: u for u in local}
        by_username = {u.username: u for u in local}

        resolved: Dict[str, UserInfo] = {}
        for user in users:
            target = by_id.get(options.user_mapping.get(user.id, ''))
            if target is None:
                target = by_username.get(user.username)
            if target is not None:
                resolved[user.id] = target
        return resolved

    def resolve_airport(
        self,
        raw: Optional[Dict[str, Any]],
        options: ImportOptions,
    ) -> Optional[AirportInfo]:
        if not raw:
            return None
        code = (raw.get('icao') or '').strip().upper()
        mapped = options.airport_mapping.get(code)
        if mapped is not None:
            return self.lookup.airport_by_id(mapped)
        return self.lookup.airport_by_icao(code)

    def resolve_airline(
        self,
        raw: Optional[Dict[str, Any]],
        options: ImportOptions,
    ) -> Optional[AirlineInfo]:
        if not raw:
            return None
        code = (raw.get('icao') or '').strip().upper()
        if code:
            mapped = options.airline_mapping.get(code)
            if mapped is not None:
                return self.lookup.airline_by_id(mapped)
            return self.lookup.airline_by_icao(code)
        return self.lookup.airline_by_name(raw.get('name'))

    def resolve_aircraft(self, raw: Optional[Dict[str, Any]]) -> Optional[AircraftInfo]:
        if not raw:
            return None
        return self.lookup.aircraft_by_icao(raw.get('icao')) or self.lookup.aircraft_by_name(raw.get('name'))

    def resolve_seats(
        self,
        raw_seats: List[Dict[str, Any]],
        exported_users: Dict[str, ExportedUser],
        local_users: Dict[str, UserInfo],
        current_user: UserInfo,
        flight_index: int,
        result: ImportResult,
    ) -> List[SeatInput]:
        """
        Build seats for one leg.

        Exported users without a local account become guests under their
        display name. The importing user always ends up with a seat.
        """
        seats: List[SeatInput] = []
        seen = set()

        for raw in raw_seats:
            exported = exported_users.get(raw.get('userId') or '')
            user = local_users.get(exported.id) if exported else None
            if exported is not None and user is None:
                _note(result.unknown_users, exported.unknown_key, flight_index)

            guest_name = None
            if user is None:
                guest_name = _clean(raw.get('guestName')) or (exported.display_name if exported else None)
            if user is None and not guest_name:
                logger.warning(f'Flight {flight_index}: dropping seat with no traveller')
                continue

            seat = SeatInput(
                user_id=user.id if user else None,
                guest_name=guest_name,
                seat=raw.get('seat'),
                seat_number=_clean(raw.get('seatNumber')),
                seat_class=raw.get('seatClass'),
            )
            if seat.key() in seen:
                continue
            seen.add(seat.key())
            seats.append(seat)

        if ('user', current_user.id) not in seen:
            seats.append(SeatInput(user_id=current_user.id))

        return seats

    def resolve_leg(
        self,
        raw: Dict[str, Any],
        path: str,
        flight_index: int,
        options: ImportOptions,
        exported_users: Dict[str, ExportedUser],
        local_users: Dict[str, UserInfo],
        current_user: UserInfo,
        result: ImportResult,
    ) -> NormalizedLeg:
        from_airport = self.resolve_airport(raw.get('from'), options)
        to_airport = self.resolve_airport(raw.get('to'), options)
        for side, airport in (('from', from_airport), ('to', to_airport)):
            if airport is None and raw.get(side):
                _note(result.unknown_airports, raw[side]['icao'].strip().upper(), flight_index)

        airline = self.resolve_airline(raw.get('airline'), options)
        if airline is None and raw.get('airline') and raw['airline'].get('icao'):
            _note(result.unknown_airlines, raw['airline']['icao'].strip().upper(), flight_index)

        instants = {
            _INSTANT_ATTRS[key]: _parse_tolerant(raw.get(key), f'{path}.{key}')
            for key in INSTANT_FIELDS
        }

        return NormalizedLeg(
            from_airport=from_airport,
            to_airport=to_airport,
            duration=raw.get('duration'),
            departure_terminal=_clean(raw.get('departureTerminal')),
            departure_gate=_clean(raw.get('departureGate')),
            arrival_terminal=_clean(raw.get('arrivalTerminal')),
            arrival_gate=_clean(raw.get('arrivalGate')),
            flight_number=_clean(raw.get('flightNumber')),
            aircraft_reg=_clean(raw.get('aircraftReg')),
            aircraft=self.resolve_aircraft(raw.get('aircraft')),
            airline=airline,
            seats=self.resolve_seats(
                raw.get('seats') or [], exported_users, local_users, current_user, flight_index, result
            ),
            **instants,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def prepare(
        self,
        export: AirTrailExport,
        options: ImportOptions,
        current_user: UserInfo,
    ) -> Tuple[List[NormalizedFlight], ImportResult]:
        """Resolve the whole export without writing anything."""
        result = ImportResult()
        local_users = self.resolve_users(export.users, options)
        exported_users = {u.id: u for u in export.users}

        ready: List[NormalizedFlight] = []
        for index, raw in enumerate(export.flights):
            legs = [
                self.resolve_leg(
                    leg, f'flights[{index}].legs[{j}]', index, options,
                    exported_users, local_users, current_user, result,
                )
                for j, leg in enumerate(raw['legs'])
            ]

            if any(leg.from_airport is None or leg.to_airport is None for leg in legs):
                logger.warning(f'Skipping flight {index}: airport not resolved')
                result.skipped_flights += 1
                continue

            flight = assemble_imported_flight(
                legs,
                flight_date=resolver.parse_local_date(raw['date']) if raw.get('date') else None,
                flight_reason=raw.get('flightReason'),
                note=_clean(raw.get('note')),
            )
            if flight is None:
                logger.warning(f'Skipping flight {index}: no date')
                result.skipped_flights += 1
                continue
            ready.append(flight)

        return ready, result

    def run(
        self,
        export: AirTrailExport,
        options: ImportOptions,
        current_user: UserInfo,
    ) -> ImportResult:
        flights, result = self.prepare(export, options, current_user)

        counts = import_flights(self.store, flights, current_user.id, dedupe=options.dedupe)
        result.inserted_flights = counts.inserted_flights
        result.attached_seats = counts.attached_seats

        logger.info(
            f'Import for {current_user.username}: {result.inserted_flights} inserted, '
            f'{result.attached_seats} seat(s) attached, {result.skipped_flights} skipped, '
            f'{len(result.unknown_airports)} unknown airport(s), '
            f'{len(result.unknown_users)} unknown user(s)'
        )
        return result
