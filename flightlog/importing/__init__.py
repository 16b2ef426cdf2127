"""
Importing module for FlightLog.

Parses AirTrail exports, resolves them against local reference data and
stores them without creating duplicate flights.
"""

from flightlog.importing.airtrail import AirTrailExport, ExportedUser, parse_airtrail_export
from flightlog.importing.dedupe import ImportCounts, flight_signature, import_flights, plan_import
from flightlog.importing.pipeline import ImportOptions, ImportPipeline, ImportResult

__all__ = [
    'AirTrailExport',
    'ExportedUser',
    'parse_airtrail_export',
    'ImportCounts',
    'flight_signature',
    'import_flights',
    'plan_import',
    'ImportOptions',
    'ImportPipeline',
    'ImportResult',
]
