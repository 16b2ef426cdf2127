"""
Flight store - the persistence boundary used by the core.

Every public method runs in its own session and transaction. A flight is
always written together with its ordered legs and their seats, so a
partially written flight is never visible. Database errors are rolled
back, logged and re-raised as PersistenceError.
"""

import datetime
import logging
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, List, Optional, Set, Union

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from flightlog.errors import PersistenceError
from flightlog.models import Flight, Leg, Seat, SessionLocal
from flightlog.validation.contracts import NormalizedFlight, NormalizedLeg

logger = logging.getLogger(__name__)


def _flight_load_options() -> list:
    """Eager-load legs with their references and seats."""
    legs = selectinload(Flight.legs)
    return [
        legs.selectinload(Leg.seats),
        legs.selectinload(Leg.from_airport),
        legs.selectinload(Leg.to_airport),
        legs.selectinload(Leg.airline),
        legs.selectinload(Leg.aircraft),
    ]


def _as_id_list(user_ids: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(user_ids, str):
        return [user_ids]
    return list(user_ids)


def _build_leg(leg: NormalizedLeg, order: int) -> Leg:
    return Leg(
        order=order,
        from_id=leg.from_airport.id if leg.from_airport else None,
        to_id=leg.to_airport.id if leg.to_airport else None,
        departure=leg.departure,
        arrival=leg.arrival,
        departure_scheduled=leg.departure_scheduled,
        arrival_scheduled=leg.arrival_scheduled,
        takeoff_scheduled=leg.takeoff_scheduled,
        takeoff_actual=leg.takeoff_actual,
        landing_scheduled=leg.landing_scheduled,
        landing_actual=leg.landing_actual,
        duration=leg.duration,
        departure_terminal=leg.departure_terminal,
        departure_gate=leg.departure_gate,
        arrival_terminal=leg.arrival_terminal,
        arrival_gate=leg.arrival_gate,
        flight_number=leg.flight_number,
        aircraft_reg=leg.aircraft_reg,
        aircraft_id=leg.aircraft.id if leg.aircraft else None,
        airline_id=leg.airline.id if leg.airline else None,
        seats=[
            Seat(
                user_id=seat.user_id,
                guest_name=seat.guest_name,
                seat=seat.seat,
                seat_number=seat.seat_number,
                seat_class=seat.seat_class,
            )
            for seat in leg.seats
        ],
    )


def _build_legs(legs: List[NormalizedLeg]) -> List[Leg]:
    # Order is positional, whatever the caller set
    return [_build_leg(leg, index) for index, leg in enumerate(legs)]


class FlightStore:
    """SQLAlchemy implementation of the flight persistence boundary."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, action: str) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f'{action} failed: {e}')
            raise PersistenceError(f'{action} failed') from e
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_flight(self, flight: NormalizedFlight) -> int:
        """Insert a flight with its legs and seats. Returns the new id."""
        with self._transaction('Create flight') as session:
            row = Flight(
                date=flight.date,
                flight_reason=flight.flight_reason,
                note=flight.note,
                legs=_build_legs(flight.legs),
            )
            session.add(row)
            session.flush()
            flight_id = row.id

        logger.info(f'Created flight {flight_id} with {len(flight.legs)} leg(s)')
        return flight_id

    def update_flight(self, flight_id: int, flight: NormalizedFlight) -> None:
        """
        Replace a flight's fields, legs and seats.

        All existing legs are deleted (seats cascade) and the new ones
        inserted, in one transaction.
        """
        with self._transaction('Update flight') as session:
            row = session.get(Flight, flight_id)
            if row is None:
                raise PersistenceError(f'Flight {flight_id} not found')

            row.date = flight.date
            row.flight_reason = flight.flight_reason
            row.note = flight.note

            row.legs.clear()
            # Old legs must be gone before (flight_id, leg_order) is reused
            session.flush()
            row.legs.extend(_build_legs(flight.legs))

        logger.info(f'Updated flight {flight_id} with {len(flight.legs)} leg(s)')

    def create_many_flights(self, flights: List[NormalizedFlight]) -> int:
        """Insert a batch of flights in a single transaction."""
        if not flights:
            return 0

        with self._transaction('Bulk create flights') as session:
            session.add_all([
                Flight(
                    date=flight.date,
                    flight_reason=flight.flight_reason,
                    note=flight.note,
                    legs=_build_legs(flight.legs),
                )
                for flight in flights
            ])

        logger.info(f'Created {len(flights)} flights')
        return len(flights)

    def insert_seats(self, rows: List[Dict]) -> int:
        """
        Bulk insert seat rows.

        Each row: leg_id, user_id, guest_name, seat, seat_number, seat_class.
        """
        if not rows:
            return 0

        with self._transaction('Insert seats') as session:
            session.execute(insert(Seat), rows)

        return len(rows)

    def delete_flight(self, flight_id: int) -> bool:
        """Delete one flight; legs and seats cascade. False if it did not exist."""
        with self._transaction('Delete flight') as session:
            result = session.execute(delete(Flight).where(Flight.id == flight_id))
            deleted = result.rowcount

        return bool(deleted)

    def delete_flights(self, flight_ids: Iterable[int]) -> int:
        ids = list(flight_ids)
        if not ids:
            return 0

        with self._transaction('Delete flights') as session:
            result = session.execute(delete(Flight).where(Flight.id.in_(ids)))
            deleted = result.rowcount

        logger.info(f'Deleted {deleted} flights')
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_flight(self, flight_id: int) -> Optional[Flight]:
        with self._transaction('Get flight') as session:
            stmt = select(Flight).where(Flight.id == flight_id).options(*_flight_load_options())
            return session.execute(stmt).scalars().first()

    def find_user_flights(
        self,
        user_ids: Union[str, Iterable[str]],
        dates: Optional[Iterable[datetime.date]] = None,
        origin_ids: Optional[Iterable[int]] = None,
        dest_ids: Optional[Iterable[int]] = None,
    ) -> List[Flight]:
        """
        Flights on which any of ``user_ids`` holds a seat.

        Legs come ordered by ``order`` with seats and references loaded.
        ``dates`` is applied in SQL; ``origin_ids`` / ``dest_ids`` are matched
        in memory against the first leg only.
        """
        ids = _as_id_list(user_ids)
        if not ids:
            return []

        holder = (
            select(Leg.id)
            .join(Seat, Seat.leg_id == Leg.id)
            .where(Leg.flight_id == Flight.id)
            .where(Seat.user_id.in_(ids))
        )
        stmt = (
            select(Flight)
            .where(holder.exists())
            .options(*_flight_load_options())
            .order_by(Flight.date, Flight.id)
        )
        if dates is not None:
            stmt = stmt.where(Flight.date.in_(list(dates)))

        with self._transaction('Find user flights') as session:
            flights = list(session.execute(stmt).scalars().unique().all())

        if origin_ids is not None or dest_ids is not None:
            origins = set(origin_ids) if origin_ids is not None else None
            dests = set(dest_ids) if dest_ids is not None else None

            def first_leg_matches(flight: Flight) -> bool:
                if not flight.legs:
                    return False
                first = flight.legs[0]
                if origins is not None and first.from_id not in origins:
                    return False
                if dests is not None and first.to_id not in dests:
                    return False
                return True

            flights = [f for f in flights if first_leg_matches(f)]

        return flights

    def find_user_seat_flight_ids(self, user_id: str, flight_ids: Iterable[int]) -> Set[int]:
        """Which of ``flight_ids`` the user holds a seat on, in one query."""
        ids = list(flight_ids)
        if not ids:
            return set()

        stmt = (
            select(Leg.flight_id)
            .join(Seat, Seat.leg_id == Leg.id)
            .where(Seat.user_id == user_id)
            .where(Leg.flight_id.in_(ids))
            .distinct()
        )
        with self._transaction('Find user seats') as session:
            return set(session.execute(stmt).scalars().all())
