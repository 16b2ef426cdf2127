"""
Database models for FlightLog.

Schema designed around the multi-leg flight:
1. A Flight owns an ordered list of Legs
2. A Leg owns its Seats (registered users or named guests)
3. Airports, airlines, aircraft and users are reference data
"""

from flightlog.models.base import (
    Base, UTCDateTime, engine, SessionLocal, make_engine, init_db, get_session,
)
from flightlog.models.reference import Airport, Airline, Aircraft, User
from flightlog.models.flight import Flight, Leg, Seat, FlightReason, SeatType, SeatClass

__all__ = [
    'Base',
    'UTCDateTime',
    'engine',
    'SessionLocal',
    'make_engine',
    'init_db',
    'get_session',
    'Airport',
    'Airline',
    'Aircraft',
    'User',
    'Flight',
    'Leg',
    'Seat',
    'FlightReason',
    'SeatType',
    'SeatClass',
]
