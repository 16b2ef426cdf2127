"""
API module for FlightLog.

Provides REST endpoints for saving, deleting and importing flights.
"""

from flightlog.api.flights import flights_bp

__all__ = ['flights_bp']
