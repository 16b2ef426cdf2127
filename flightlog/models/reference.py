"""
Reference data models - airports, airlines, aircraft types and users.

These rows are owned outside the flight log (seeded from external
databases or managed by the account system) and are only referenced
by id from legs and seats.
"""

from typing import Optional

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from flightlog.models.base import Base


class Airport(Base):
    """
    Airport with the IANA zone used to interpret local times.

    Fields:
        icao: 4-letter ICAO code (e.g., 'KJFK')
        iata: 3-letter IATA code (e.g., 'JFK'), may be missing for small fields
        tz: IANA timezone id (e.g., 'America/New_York')
    """

    __tablename__ = 'airport'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    icao: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
        unique=True,
        comment='ICAO airport code'
    )

    iata: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        index=True,
        comment='IATA airport code'
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    lat: Mapped[float] = mapped_column(Float, nullable=False, comment='Latitude in decimal degrees')

    lon: Mapped[float] = mapped_column(Float, nullable=False, comment='Longitude in decimal degrees')

    tz: Mapped[str] = mapped_column(String(64), nullable=False, comment='IANA timezone id')

    def __repr__(self) -> str:
        return f'<Airport {self.icao} {self.iata or "?"}>'


class Airline(Base):
    """Operating airline."""

    __tablename__ = 'airline'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    icao: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        index=True,
        comment='ICAO airline code (e.g., UAL)'
    )

    iata: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    def __repr__(self) -> str:
        return f'<Airline {self.icao or "?"} {self.name}>'


class Aircraft(Base):
    """Aircraft type (e.g., B738 / Boeing 737-800)."""

    __tablename__ = 'aircraft'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    icao: Mapped[Optional[str]] = mapped_column(
        String(4),
        nullable=True,
        index=True,
        comment='ICAO type designator (e.g., B738)'
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    def __repr__(self) -> str:
        return f'<Aircraft {self.icao or "?"} {self.name}>'


class User(Base):
    """Registered traveller. Accounts are managed elsewhere."""

    __tablename__ = 'user'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f'<User {self.username}>'
