"""
FlightLog Backend Package.

Personal flight history with multi-leg trips, built with Flask and SQLAlchemy.

Modules:
    api/          REST endpoints for saving, deleting and importing flights
    models/       SQLAlchemy ORM models (Flight, Leg, Seat, reference data)
    validation/   Timezone reconciliation, leg validation and flight assembly
    importing/    AirTrail export parsing and the deduplicating bulk importer
    services/     Flight save/delete orchestration returning tagged results
    geo.py        Great-circle distance and flight duration estimate
    reference.py  Cached airport/airline/aircraft lookups
    store.py      Transactional persistence boundary
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
