"""Main blueprint with the health check endpoint."""
from flask import Blueprint, jsonify
from sqlalchemy import text
from qms.database import get_session

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        503: Unhealthy (DB error)
    """
    try:
        row = get_session().execute(text("SELECT 1")).fetchone()
    except Exception as e:
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
        }), 503

    if not row or row[0] != 1:
        return jsonify({'status': 'unhealthy', 'database': 'error'}), 503

    return jsonify({'status': 'healthy', 'database': 'connected'}), 200
