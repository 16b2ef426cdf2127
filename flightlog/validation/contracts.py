"""
Input and output records for leg validation and flight assembly.

Raw records carry what the user typed: calendar dates and times of day as
separate strings, airports already resolved to reference rows. Normalized
records carry UTC instants and are what the store persists.
"""

import datetime
from dataclasses import dataclass, field
from typing import List, Optional

from flightlog.reference import AircraftInfo, AirlineInfo, AirportInfo

# Datetime fields that come as a (date, time) pair. The first element is
# the attribute prefix, the second which airport's zone applies.
DEPARTURE_SIDE = 'from'
ARRIVAL_SIDE = 'to'

PAIRED_FIELDS = (
    ('departure_scheduled', DEPARTURE_SIDE),
    ('takeoff_scheduled', DEPARTURE_SIDE),
    ('takeoff_actual', DEPARTURE_SIDE),
    ('arrival_scheduled', ARRIVAL_SIDE),
    ('landing_scheduled', ARRIVAL_SIDE),
    ('landing_actual', ARRIVAL_SIDE),
)


@dataclass
class SeatInput:
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    seat: Optional[str] = None
    seat_number: Optional[str] = None
    seat_class: Optional[str] = None

    def key(self) -> tuple:
        """Identity of the traveller within one leg."""
        if self.user_id:
            return ('user', self.user_id)
        return ('guest', self.guest_name)


@dataclass
class RawLeg:
    """One leg exactly as entered, after boundary defaults are filled in."""
    from_airport: Optional[AirportInfo]
    to_airport: Optional[AirportInfo]

    departure: Optional[str] = None
    departure_time: Optional[str] = None
    arrival: Optional[str] = None
    arrival_time: Optional[str] = None

    departure_scheduled: Optional[str] = None
    departure_scheduled_time: Optional[str] = None
    arrival_scheduled: Optional[str] = None
    arrival_scheduled_time: Optional[str] = None
    takeoff_scheduled: Optional[str] = None
    takeoff_scheduled_time: Optional[str] = None
    takeoff_actual: Optional[str] = None
    takeoff_actual_time: Optional[str] = None
    landing_scheduled: Optional[str] = None
    landing_scheduled_time: Optional[str] = None
    landing_actual: Optional[str] = None
    landing_actual_time: Optional[str] = None

    departure_terminal: Optional[str] = None
    departure_gate: Optional[str] = None
    arrival_terminal: Optional[str] = None
    arrival_gate: Optional[str] = None

    flight_number: Optional[str] = None
    aircraft_reg: Optional[str] = None
    aircraft: Optional[AircraftInfo] = None
    airline: Optional[AirlineInfo] = None

    seats: List[SeatInput] = field(default_factory=list)

    @property
    def primary_departure_date(self) -> Optional[str]:
        """Actual departure date, falling back to the scheduled one."""
        return self.departure or self.departure_scheduled


@dataclass
class RawFlight:
    legs: List[RawLeg]
    flight_reason: Optional[str] = None
    note: Optional[str] = None
    # Set when editing an existing flight
    id: Optional[int] = None


@dataclass
class NormalizedLeg:
    """Leg ready for persistence: instants in UTC, duration in seconds."""
    from_airport: Optional[AirportInfo]
    to_airport: Optional[AirportInfo]
    order: int = 0

    departure: Optional[datetime.datetime] = None
    arrival: Optional[datetime.datetime] = None
    departure_scheduled: Optional[datetime.datetime] = None
    arrival_scheduled: Optional[datetime.datetime] = None
    takeoff_scheduled: Optional[datetime.datetime] = None
    takeoff_actual: Optional[datetime.datetime] = None
    landing_scheduled: Optional[datetime.datetime] = None
    landing_actual: Optional[datetime.datetime] = None

    duration: Optional[int] = None

    departure_terminal: Optional[str] = None
    departure_gate: Optional[str] = None
    arrival_terminal: Optional[str] = None
    arrival_gate: Optional[str] = None

    flight_number: Optional[str] = None
    aircraft_reg: Optional[str] = None
    aircraft: Optional[AircraftInfo] = None
    airline: Optional[AirlineInfo] = None

    seats: List[SeatInput] = field(default_factory=list)


@dataclass
class NormalizedFlight:
    date: datetime.date
    legs: List[NormalizedLeg]
    flight_reason: Optional[str] = None
    note: Optional[str] = None
