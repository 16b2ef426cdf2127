"""
FlightLog Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Reference lookup and flight store
- API routes

Usage:
    python -m flightlog.app

Or with gunicorn:
    gunicorn 'flightlog.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from flightlog.config import config
from flightlog.models import init_db
from flightlog.api import flights_bp
from flightlog.reference import ReferenceLookup
from flightlog.services import FlightService
from flightlog.store import FlightStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    store: Optional[FlightStore] = None,
    lookup: Optional[ReferenceLookup] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        store: Flight store to use. Defaults to one on the configured database.
        lookup: Reference lookup to use. Defaults to one on the configured database.
               Tests pass both, bound to an in-memory database.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    if store is None or lookup is None:
        logger.info('Initializing database...')
        init_db()

    app.config['FLIGHT_SERVICE'] = FlightService(
        store=store or FlightStore(),
        lookup=lookup or ReferenceLookup(),
    )

    # Register API blueprints
    app.register_blueprint(flights_bp)

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'success': False, 'message': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'success': False, 'message': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'success': False, 'message': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))
    logger.info(f'Starting FlightLog on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
    )


if __name__ == '__main__':
    run_development_server()
