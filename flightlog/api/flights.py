"""
Flight API endpoints.

Provides endpoints for:
- POST /api/flight/save - Create or edit a flight
- DELETE /api/flights/<id> - Delete one flight
- POST /api/flights/delete - Delete several flights
- POST /api/flights/delete-all - Delete every flight not shared with another user
- POST /api/flights/import - Import an AirTrail export

The acting user comes from the X-User-Id header set by the
authentication layer in front of this service.
"""

import logging
from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from flightlog.errors import OperationError, PayloadError, PersistenceError
from flightlog.importing import ImportOptions
from flightlog.services import FlightService
from flightlog.api.payloads import build_raw_flight

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api')

USER_HEADER = 'X-User-Id'


def _service() -> FlightService:
    return current_app.config['FLIGHT_SERVICE']


def _acting_user() -> Optional[str]:
    user_id = request.headers.get(USER_HEADER, '').strip()
    return user_id or None


def _unauthorized():
    return jsonify({'success': False, 'message': 'Not signed in'}), 401


def _respond(result):
    return jsonify(result.to_dict()), result.status


@flights_bp.route('/flight/save', methods=['POST'])
def save_flight():
    """
    Create a flight, or update it when the body carries an id.

    Accepts the legs shape or the legacy single-leg shape; see
    flightlog.api.payloads.
    """
    user_id = _acting_user()
    if user_id is None:
        return _unauthorized()

    service = _service()
    try:
        raw = build_raw_flight(request.get_json(silent=True), user_id, service.lookup)
    except PayloadError as e:
        return jsonify({'success': False, 'path': e.path, 'message': e.message}), 400

    return _respond(service.save_flight(user_id, raw))


@flights_bp.route('/flights/<int:flight_id>', methods=['DELETE'])
def delete_flight(flight_id: int):
    user_id = _acting_user()
    if user_id is None:
        return _unauthorized()

    return _respond(_service().delete_flight(user_id, flight_id))


@flights_bp.route('/flights/delete', methods=['POST'])
def delete_flights():
    """Body: {"ids": [1, 2, 3]}"""
    user_id = _acting_user()
    if user_id is None:
        return _unauthorized()

    data = request.get_json(silent=True) or {}
    try:
        ids = [int(i) for i in data.get('ids') or []]
    except (TypeError, ValueError):
        return jsonify({'success': False, 'path': 'ids', 'message': 'Invalid flight id'}), 400

    return _respond(_service().delete_flights(user_id, ids))


@flights_bp.route('/flights/delete-all', methods=['POST'])
def delete_all_flights():
    user_id = _acting_user()
    if user_id is None:
        return _unauthorized()

    try:
        deleted = _service().delete_all_flights(user_id)
    except PersistenceError:
        return _respond(OperationError('Failed to delete flights'))

    return jsonify({'success': True, 'deleted': deleted})


@flights_bp.route('/flights/import', methods=['POST'])
def import_flights():
    """
    Import an AirTrail export.

    Body: {"file": "<export json text>", "options": {"dedupe": true,
    "airportMapping": {...}, "airlineMapping": {...}, "userMapping": {...}}}
    """
    user_id = _acting_user()
    if user_id is None:
        return _unauthorized()

    data = request.get_json(silent=True) or {}
    text = data.get('file')
    if not isinstance(text, str) or not text.strip():
        return jsonify({'success': False, 'path': 'file', 'message': 'No file provided'}), 400

    try:
        options = ImportOptions.from_dict(data.get('options'))
    except (AttributeError, TypeError, ValueError):
        return jsonify({'success': False, 'path': 'options', 'message': 'Invalid import options'}), 400

    result = _service().import_flights(user_id, text, options)
    if isinstance(result, OperationError):
        return _respond(result)

    return jsonify({'success': True, **result.to_dict()})
