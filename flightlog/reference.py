"""
Reference data lookup - airports, airlines, aircraft types and users.

Maps ICAO codes (and names, where no code is known) to the reference rows
legs point at. Results are returned as plain dataclasses so they can be
passed around after the session that loaded them is closed.

Usage:
    from flightlog.reference import ReferenceLookup

    lookup = ReferenceLookup()
    jfk = lookup.airport_by_icao('KJFK')
    print(jfk.tz)  # 'America/New_York'
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, insert, select
from sqlalchemy.orm import sessionmaker

from flightlog.models import Aircraft, Airline, Airport, SessionLocal, User, get_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AirportInfo:
    """Airport reference as seen by the validator."""
    id: int
    icao: str
    name: str
    lat: float
    lon: float
    tz: str
    iata: Optional[str] = None

    @classmethod
    def from_model(cls, airport: Airport) -> 'AirportInfo':
        return cls(
            id=airport.id,
            icao=airport.icao,
            iata=airport.iata,
            name=airport.name,
            lat=airport.lat,
            lon=airport.lon,
            tz=airport.tz,
        )


@dataclass(frozen=True)
class AirlineInfo:
    id: int
    name: str
    icao: Optional[str] = None
    iata: Optional[str] = None

    @classmethod
    def from_model(cls, airline: Airline) -> 'AirlineInfo':
        return cls(id=airline.id, name=airline.name, icao=airline.icao, iata=airline.iata)


@dataclass(frozen=True)
class AircraftInfo:
    id: int
    name: str
    icao: Optional[str] = None

    @classmethod
    def from_model(cls, aircraft: Aircraft) -> 'AircraftInfo':
        return cls(id=aircraft.id, name=aircraft.name, icao=aircraft.icao)


@dataclass(frozen=True)
class UserInfo:
    id: str
    username: str
    display_name: str


class ReferenceLookup:
    """
    In-memory reference lookup with database backing.

    Maintains a cache of recently looked-up rows for performance, misses
    included. Falls back to the database for uncached entries.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, cache_size: int = 2000):
        self._session_factory = session_factory
        self._cache: Dict[Tuple[str, Any], Any] = {}
        self._cache_size = cache_size

    def _cached(self, key: Tuple[str, Any], load: Callable[[], Any]) -> Any:
        if key in self._cache:
            return self._cache[key]

        value = load()

        if len(self._cache) >= self._cache_size:
            # Simple cache eviction: clear oldest half
            keys = list(self._cache.keys())
            for old_key in keys[:len(keys) // 2]:
                del self._cache[old_key]

        self._cache[key] = value
        return value

    def _first(self, stmt, convert: Callable[[Any], Any]) -> Any:
        with self._session_factory() as session:
            row = session.execute(stmt.limit(1)).scalars().first()
            return convert(row) if row is not None else None

    # -------------------------------------------------------------------------
    # Airports
    # -------------------------------------------------------------------------

    def airport_by_icao(self, icao: Optional[str]) -> Optional[AirportInfo]:
        if not icao:
            return None
        code = icao.strip().upper()
        return self._cached(
            ('airport_icao', code),
            lambda: self._first(
                select(Airport).where(func.upper(Airport.icao) == code),
                AirportInfo.from_model,
            ),
        )

    def airport_by_id(self, airport_id: Optional[int]) -> Optional[AirportInfo]:
        if airport_id is None:
            return None
        return self._cached(
            ('airport_id', airport_id),
            lambda: self._first(select(Airport).where(Airport.id == airport_id), AirportInfo.from_model),
        )

    # -------------------------------------------------------------------------
    # Airlines
    # -------------------------------------------------------------------------

    def airline_by_icao(self, icao: Optional[str]) -> Optional[AirlineInfo]:
        if not icao:
            return None
        code = icao.strip().upper()
        return self._cached(
            ('airline_icao', code),
            lambda: self._first(
                select(Airline).where(func.upper(Airline.icao) == code),
                AirlineInfo.from_model,
            ),
        )

    def airline_by_id(self, airline_id: Optional[int]) -> Optional[AirlineInfo]:
        if airline_id is None:
            return None
        return self._cached(
            ('airline_id', airline_id),
            lambda: self._first(select(Airline).where(Airline.id == airline_id), AirlineInfo.from_model),
        )

    def airline_by_name(self, name: Optional[str]) -> Optional[AirlineInfo]:
        if not name:
            return None
        key = name.strip().lower()
        return self._cached(
            ('airline_name', key),
            lambda: self._first(
                select(Airline).where(func.lower(Airline.name) == key),
                AirlineInfo.from_model,
            ),
        )

    # -------------------------------------------------------------------------
    # Aircraft
    # -------------------------------------------------------------------------

    def aircraft_by_icao(self, icao: Optional[str]) -> Optional[AircraftInfo]:
        if not icao:
            return None
        code = icao.strip().upper()
        return self._cached(
            ('aircraft_icao', code),
            lambda: self._first(
                select(Aircraft).where(func.upper(Aircraft.icao) == code),
                AircraftInfo.from_model,
            ),
        )

    def aircraft_by_name(self, name: Optional[str]) -> Optional[AircraftInfo]:
        if not name:
            return None
        key = name.strip().lower()
        return self._cached(
            ('aircraft_name', key),
            lambda: self._first(
                select(Aircraft).where(func.lower(Aircraft.name) == key),
                AircraftInfo.from_model,
            ),
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def list_users(self) -> List[UserInfo]:
        """All registered users. Not cached: accounts change independently."""
        with self._session_factory() as session:
            rows = session.execute(select(User).order_by(User.username)).scalars().all()
            return [UserInfo(id=u.id, username=u.username, display_name=u.display_name) for u in rows]

    def clear_cache(self) -> None:
        """Clear the lookup cache."""
        self._cache.clear()


def load_airports_csv(
    csv_path: Path,
    session_factory: sessionmaker = SessionLocal,
    batch_size: int = 5000,
) -> int:
    """
    Load airport reference data from CSV into database.

    Expected CSV header: icao,iata,name,lat,lon,tz

    Rows without an ICAO code, with unparseable coordinates or without a
    timezone are skipped. Returns count of records loaded.
    """
    if not csv_path.exists():
        logger.error(f'Airport CSV not found: {csv_path}')
        return 0

    logger.info(f'Loading airport data from {csv_path}')
    loaded = 0
    skipped = 0
    batch = []

    with open(csv_path, 'r', encoding='utf-8', errors='ignore') as f, get_session(session_factory) as session:
        reader = csv.DictReader(f)

        for row in reader:
            icao = (row.get('icao') or '').strip().upper()
            tz = (row.get('tz') or '').strip()
            if not icao or not tz:
                skipped += 1
                continue

            try:
                lat = float(row.get('lat', ''))
                lon = float(row.get('lon', ''))
            except ValueError:
                skipped += 1
                continue

            batch.append({
                'icao': icao,
                'iata': (row.get('iata') or '').strip().upper() or None,
                'name': (row.get('name') or icao).strip(),
                'lat': lat,
                'lon': lon,
                'tz': tz,
            })

            if len(batch) >= batch_size:
                session.execute(insert(Airport), batch)
                loaded += len(batch)
                batch = []

        if batch:
            session.execute(insert(Airport), batch)
            loaded += len(batch)

    logger.info(f'Loaded {loaded} airports ({skipped} rows skipped)')
    return loaded
