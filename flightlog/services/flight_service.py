"""
Flight service - the operations the HTTP layer calls.

Owns the rules that need both validation and storage: edits and deletes
are only allowed for users holding a seat on the flight, and store
failures are turned into OperationError results rather than raised.
"""

import logging
from typing import Iterable, List, Optional, Union

from flightlog.errors import (
    ImportFormatError, OperationError, PersistenceError, SaveResult, SaveSuccess,
)
from flightlog.importing import (
    AirTrailExport, ImportOptions, ImportPipeline, ImportResult, parse_airtrail_export,
)
from flightlog.models import Flight
from flightlog.reference import ReferenceLookup, UserInfo
from flightlog.store import FlightStore
from flightlog.validation import RawFlight, assemble_flight
from flightlog.validation.flight import NOT_OWNER_MESSAGE

logger = logging.getLogger(__name__)


def _only_guests_besides(flight: Flight, user_id: str) -> bool:
    """True when the user holds exactly one seat and every other seat is a guest's."""
    seats = [seat for leg in flight.legs for seat in leg.seats]
    own = [s for s in seats if s.user_id == user_id]
    others = [s for s in seats if s.user_id != user_id]
    return len(own) == 1 and all(s.user_id is None for s in others)


class FlightService:
    """Save, delete and import flights on behalf of a user."""

    def __init__(self, store: FlightStore, lookup: ReferenceLookup):
        self.store = store
        self.lookup = lookup
        self.pipeline = ImportPipeline(store, lookup)

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    def save_flight(self, user_id: str, raw: RawFlight) -> SaveResult:
        """
        Create a flight, or update it when ``raw.id`` is set.

        Returns SaveSuccess, a PathError for the first invalid field, or an
        OperationError (403 not owner, 500 store failure).
        """
        existing = None
        if raw.id is not None:
            try:
                existing = self.store.get_flight(raw.id)
            except PersistenceError:
                return OperationError('Failed to update flight')

        result = assemble_flight(raw, acting_user_id=user_id, existing=existing)
        if not result.ok:
            return result.error

        flight = result.value
        if raw.id is None:
            try:
                flight_id = self.store.create_flight(flight)
            except PersistenceError:
                return OperationError('Failed to add flight')
            return SaveSuccess('Flight added', id=flight_id)

        try:
            self.store.update_flight(raw.id, flight)
        except PersistenceError:
            return OperationError('Failed to update flight')
        return SaveSuccess('Flight updated', id=raw.id)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_flight(self, user_id: str, flight_id: int) -> Union[SaveSuccess, OperationError]:
        try:
            flight = self.store.get_flight(flight_id)
            if flight is None:
                return OperationError('Flight not found', status=404)
            if not flight.has_seat_for(user_id):
                return OperationError(NOT_OWNER_MESSAGE, status=403)
            self.store.delete_flight(flight_id)
        except PersistenceError:
            return OperationError('Failed to delete flight')

        logger.info(f'User {user_id} deleted flight {flight_id}')
        return SaveSuccess('Flight deleted', id=flight_id)

    def delete_flights(self, user_id: str, flight_ids: Iterable[int]) -> Union[SaveSuccess, OperationError]:
        """Delete several flights; refused as a whole unless the user is on all of them."""
        ids = set(flight_ids)
        if not ids:
            return SaveSuccess('No flights to delete')

        try:
            owned = self.store.find_user_seat_flight_ids(user_id, ids)
            if owned != ids:
                logger.info(f'User {user_id} refused delete of flights {sorted(ids - owned)}')
                return OperationError(NOT_OWNER_MESSAGE, status=403)
            deleted = self.store.delete_flights(ids)
        except PersistenceError:
            return OperationError('Failed to delete flights')

        return SaveSuccess(f'Deleted {deleted} flights')

    def delete_all_flights(self, user_id: str) -> int:
        """
        Delete the user's own flights.

        Flights shared with another registered user are kept; guests do
        not count as sharing. Raises PersistenceError on store failure.
        """
        flights = self.store.find_user_flights(user_id)
        ids: List[int] = [f.id for f in flights if _only_guests_besides(f, user_id)]
        deleted = self.store.delete_flights(ids)
        logger.info(f'User {user_id} deleted all {deleted} of their flights ({len(flights) - deleted} shared kept)')
        return deleted

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def _user(self, user_id: str) -> Optional[UserInfo]:
        for user in self.lookup.list_users():
            if user.id == user_id:
                return user
        return None

    def import_flights(
        self,
        user_id: str,
        export: Union[str, AirTrailExport],
        options: Optional[ImportOptions] = None,
    ) -> Union[ImportResult, OperationError]:
        """Import an AirTrail export (raw JSON text or already parsed)."""
        current_user = self._user(user_id)
        if current_user is None:
            return OperationError('Unknown user', status=403)

        try:
            if isinstance(export, str):
                export = parse_airtrail_export(export)
            return self.pipeline.run(export, options or ImportOptions(), current_user)
        except ImportFormatError as e:
            logger.warning(f'Rejected import for {user_id}: {e}')
            return OperationError(str(e), status=400)
        except PersistenceError:
            return OperationError('Failed to import flights')
