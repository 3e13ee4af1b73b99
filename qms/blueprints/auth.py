"""Auth blueprint: registration, login and the current user's profile."""
from flask import Blueprint, g, jsonify, current_app
from qms.database import get_session
from qms.middleware import require_auth
from qms.schemas import parse_body, dump
from qms.schemas.auth import LoginIn, RegisterIn, ProfileIn, PasswordIn, UserOut, TokenOut
from qms.services.auth_service import (
    register_user, authenticate, issue_token, update_profile, change_password
)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a USER account and return it with a token."""
    body = parse_body(RegisterIn)
    user = register_user(get_session(), body.email, body.name, body.password)
    return jsonify(dump(TokenOut(token=issue_token(user), user=UserOut.model_validate(user)))), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    body = parse_body(LoginIn)
    user = authenticate(get_session(), body.email, body.password)
    current_app.logger.info(f"User {user.email} logged in")
    return jsonify(dump(TokenOut(token=issue_token(user), user=UserOut.model_validate(user))))


@auth_bp.route('/me', methods=['GET'])
@require_auth
def me():
    return jsonify(dump(UserOut.model_validate(g.user)))


@auth_bp.route('/me', methods=['PUT'])
@require_auth
def update_me():
    body = parse_body(ProfileIn)
    user = update_profile(get_session(), g.user, body.model_dump(exclude_unset=True))
    return jsonify(dump(UserOut.model_validate(user)))


@auth_bp.route('/password', methods=['POST'])
@require_auth
def password():
    body = parse_body(PasswordIn)
    change_password(get_session(), g.user, body.current_password, body.new_password)
    return jsonify({'status': 'ok', 'message': 'Password updated'})
