"""
Service layer.

Combines validation, reference lookups and the flight store into the
operations exposed over HTTP.
"""

from flightlog.services.flight_service import FlightService

__all__ = ['FlightService']
