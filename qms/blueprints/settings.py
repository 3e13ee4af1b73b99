"""Settings blueprint - organisation settings (read: any user, write: admins)."""
from flask import Blueprint, jsonify, g, current_app
from qms.database import get_session
from qms.middleware import require_auth, require_admin
from qms.schemas import parse_body
from qms.schemas.settings import SettingsIn
from qms.services.settings_service import get_settings, update_settings

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')


@settings_bp.route('', methods=['GET'])
@require_auth
def view():
    return jsonify(get_settings(get_session()))


@settings_bp.route('', methods=['PUT'])
@require_auth
@require_admin
def update():
    """Upsert the supplied keys and return the full settings map."""
    body = parse_body(SettingsIn)
    settings = update_settings(get_session(), body.as_strings())
    current_app.logger.info(f"Settings updated by {g.user.email}")
    return jsonify(settings)
