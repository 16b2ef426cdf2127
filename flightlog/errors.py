"""
Error taxonomy and tagged results for FlightLog.

Exceptions are raised inside the core. At the service boundary they are
converted into one of the result dataclasses below so callers never have
to catch anything:

- PathError        user-correctable problem scoped to one input field
- OperationError   authorization or persistence failure, with an HTTP status
- SaveSuccess      the flight was written (carries the new id on create)
"""

from dataclasses import dataclass
from typing import Any, Optional, Union


class FlightLogError(Exception):
    """Base class for all FlightLog errors."""


class InvalidTimeFormat(FlightLogError, ValueError):
    """A date, time-of-day or IANA zone could not be interpreted."""


class FieldValidationError(FlightLogError):
    """Validation failure scoped to a field path such as ``legs[2].arrivalTime``."""

    def __init__(self, path: str, message: str):
        super().__init__(f'{path}: {message}')
        self.path = path
        self.message = message


class PayloadError(FieldValidationError):
    """Request body does not have the expected shape."""


class PersistenceError(FlightLogError):
    """The store could not complete a transaction."""


class ImportFormatError(FlightLogError):
    """An import file is not valid JSON or not a recognised export."""


@dataclass(frozen=True)
class PathError:
    path: str
    message: str
    success: bool = False
    status: int = 400

    def to_dict(self) -> dict:
        return {'success': False, 'path': self.path, 'message': self.message}


@dataclass(frozen=True)
class OperationError:
    message: str
    status: int = 500
    success: bool = False

    def to_dict(self) -> dict:
        return {'success': False, 'message': self.message}


@dataclass(frozen=True)
class SaveSuccess:
    message: str
    id: Optional[int] = None
    success: bool = True
    status: int = 200

    def to_dict(self) -> dict:
        data = {'success': True, 'message': self.message}
        if self.id is not None:
            data['id'] = self.id
        return data


SaveResult = Union[SaveSuccess, PathError, OperationError]


@dataclass(frozen=True)
class ValidationResult:
    """Either a normalized value or the first error found."""
    value: Optional[Any] = None
    error: Optional[Union[PathError, OperationError]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, path: str, message: str) -> 'ValidationResult':
        return cls(error=PathError(path=path, message=message))
