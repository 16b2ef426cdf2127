"""
Flight, Leg and Seat models - the user's recorded trips.

A Flight is an ordered, non-empty sequence of Legs. Each Leg carries its
own airports, times and seats. Seats belong to a registered user or to a
named guest.

Design notes:
- Legs and seats are owned by their parent and cascade on delete
- All instants are stored as UTC (see UTCDateTime)
- Leg order is unique within a flight and contiguous from 0
"""

import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint, Date, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flightlog.models.base import Base, UTCDateTime
from flightlog.models.reference import Aircraft, Airline, Airport


class FlightReason(str, Enum):
    LEISURE = 'leisure'
    BUSINESS = 'business'
    CREW = 'crew'
    OTHER = 'other'


class SeatType(str, Enum):
    WINDOW = 'window'
    AISLE = 'aisle'
    MIDDLE = 'middle'
    PILOT = 'pilot'
    COPILOT = 'copilot'
    JUMPSEAT = 'jumpseat'
    OTHER = 'other'


class SeatClass(str, Enum):
    ECONOMY = 'economy'
    ECONOMY_PLUS = 'economy+'
    BUSINESS = 'business'
    FIRST = 'first'
    PRIVATE = 'private'


class Flight(Base):
    """
    One trip as the traveller remembers it.

    ``date`` is the calendar date of the first leg's departure in the
    origin airport's zone; it is what the flight list is sorted and
    filtered by.
    """

    __tablename__ = 'flight'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment='Local departure date of the first leg'
    )

    flight_reason: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    legs: Mapped[List['Leg']] = relationship(
        back_populates='flight',
        order_by='Leg.order',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f'<Flight {self.id} {self.date} legs={len(self.legs)}>'

    def has_seat_for(self, user_id: str) -> bool:
        """True if the user holds a seat on any leg."""
        return any(
            seat.user_id == user_id
            for leg in self.legs
            for seat in leg.seats
        )


class Leg(Base):
    """One takeoff-to-landing segment of a Flight."""

    __tablename__ = 'leg'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    flight_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('flight.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    order: Mapped[int] = mapped_column('leg_order', Integer, nullable=False)

    # Airports are nullable only so that deleting reference data does not
    # destroy history; the core never writes a leg without both.
    from_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('airport.id', ondelete='SET NULL'), nullable=True, index=True
    )
    to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('airport.id', ondelete='SET NULL'), nullable=True, index=True
    )

    # Actual and scheduled instants (UTC)
    departure: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    arrival: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    departure_scheduled: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    arrival_scheduled: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    takeoff_scheduled: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    takeoff_actual: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    landing_scheduled: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)
    landing_actual: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime, nullable=True)

    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Block time in seconds, measured or estimated'
    )

    departure_terminal: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    departure_gate: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    arrival_terminal: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    arrival_gate: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    flight_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    aircraft_reg: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment='Aircraft registration (tail number)'
    )

    aircraft_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('aircraft.id', ondelete='SET NULL'), nullable=True
    )
    airline_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('airline.id', ondelete='SET NULL'), nullable=True
    )

    flight: Mapped[Flight] = relationship(back_populates='legs')
    from_airport: Mapped[Optional[Airport]] = relationship(foreign_keys=[from_id])
    to_airport: Mapped[Optional[Airport]] = relationship(foreign_keys=[to_id])
    aircraft: Mapped[Optional[Aircraft]] = relationship()
    airline: Mapped[Optional[Airline]] = relationship()

    seats: Mapped[List['Seat']] = relationship(
        back_populates='leg',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint('flight_id', 'leg_order', name='leg_flight_id_leg_order_key'),
    )

    def __repr__(self) -> str:
        return f'<Leg {self.flight_id}#{self.order} {self.from_id}->{self.to_id}>'


class Seat(Base):
    """A traveller's place on a leg: a registered user or a named guest."""

    __tablename__ = 'seat'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    leg_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('leg.id', ondelete='CASCADE'),
        nullable=False,
    )

    user_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey('user.id', ondelete='CASCADE'), nullable=True, index=True
    )

    guest_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    seat: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    seat_number: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    seat_class: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    leg: Mapped[Leg] = relationship(back_populates='seats')

    __table_args__ = (
        UniqueConstraint('leg_id', 'user_id', name='seat_leg_id_user_id_key'),
        UniqueConstraint('leg_id', 'guest_name', name='seat_leg_id_guest_name_key'),
        CheckConstraint(
            'user_id IS NOT NULL OR guest_name IS NOT NULL',
            name='seat_user_or_guest',
        )
    )

    def __repr__(self) -> str:
        return f'<Seat leg={self.leg_id} {self.user_id or self.guest_name}>'
