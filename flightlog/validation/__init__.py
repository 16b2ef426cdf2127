"""
Validation module for FlightLog.

Turns what the user typed (local dates and times per airport) into
normalized flights with UTC instants, one leg at a time.
"""

from flightlog.validation.contracts import (
    NormalizedFlight,
    NormalizedLeg,
    RawFlight,
    RawLeg,
    SeatInput,
)
from flightlog.validation.leg import validate_leg, compute_duration
from flightlog.validation.flight import assemble_flight, assemble_imported_flight

__all__ = [
    'NormalizedFlight',
    'NormalizedLeg',
    'RawFlight',
    'RawLeg',
    'SeatInput',
    'validate_leg',
    'compute_duration',
    'assemble_flight',
    'assemble_imported_flight',
]
