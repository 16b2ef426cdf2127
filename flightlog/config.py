"""
Configuration management for FlightLog.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///flightlog.db')


@dataclass(frozen=True)
class ValidationConfig:
    """Leg validation settings."""
    # Dates before January 1st of this year are rejected as "too far in the past"
    min_epoch_year: int = int(os.getenv('MIN_EPOCH_YEAR', '1970'))


@dataclass(frozen=True)
class EstimatorConfig:
    """Duration heuristic used when a leg has no departure/arrival times."""
    cruise_speed_kmh: float = float(os.getenv('CRUISE_SPEED_KMH', '800'))
    # Taxi, climb and descent
    overhead_minutes: int = int(os.getenv('FLIGHT_OVERHEAD_MINUTES', '30'))


@dataclass(frozen=True)
class ImportConfig:
    """Bulk import settings."""
    dedupe_default: bool = _parse_bool(os.getenv('IMPORT_DEDUPE', 'true'))
    max_flights: int = int(os.getenv('IMPORT_MAX_FLIGHTS', '10000'))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    validation: ValidationConfig
    estimator: EstimatorConfig
    importing: ImportConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        validation=ValidationConfig(),
        estimator=EstimatorConfig(),
        importing=ImportConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
