"""
Public API routes.
Service health for load balancers and uptime checks.
"""

from flask import jsonify, Blueprint, current_app

from database import get_db

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status, version and database reachability
    """
    try:
        get_db().execute('SELECT 1')
        database = 'ok'
    except Exception as e:
        current_app.logger.error(f"Health check database error: {e}")
        database = 'error'

    status_code = 200 if database == 'ok' else 503
    return jsonify({
        'status': 'ok' if database == 'ok' else 'degraded',
        'database': database,
        'version': current_app.config.get('APP_VERSION'),
        'app': current_app.config.get('APP_NAME'),
    }), status_code
