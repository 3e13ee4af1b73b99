"""Middleware for bearer-token authentication and request helpers."""
from functools import wraps
from typing import Tuple

from flask import g, request, current_app
from qms.database import get_session
from qms.exceptions import AuthenticationError, ForbiddenError, ValidationError
from qms.services.auth_service import get_user_from_token


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_current_user():
    """
    Load the current user into g (Flask's per-request global).

    Called before each request. Sets g.user when a valid bearer token is
    present; a bad token is remembered in g.auth_error and only reported
    when the endpoint requires authentication.
    """
    g.user = None
    g.auth_error = None

    token = _bearer_token()
    if not token:
        return

    try:
        g.user = get_user_from_token(get_session(), token)
    except AuthenticationError as e:
        g.auth_error = e.message


def require_auth(f):
    """
    Decorator: Require a valid bearer token.

    Raises 401 with "Token expired" / "Invalid token" when a token was sent
    but rejected, "Unauthorized" when none was sent.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthenticationError(g.get('auth_error') or 'Unauthorized')
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator: Require an ADMIN user.

    Must be used AFTER require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.user.is_admin:
            raise ForbiddenError('Admin role required')
        return f(*args, **kwargs)
    return decorated_function


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer')


def get_pagination() -> Tuple[int, int]:
    """
    Read page / pageSize from the query string.

    page defaults to 1; pageSize defaults to DEFAULT_PAGE_SIZE and is capped
    at MAX_PAGE_SIZE.
    """
    default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_size = current_app.config.get('MAX_PAGE_SIZE', 100)

    page = _int_arg('page', 1)
    page_size = _int_arg('pageSize', default_size)

    if page < 1:
        raise ValidationError('page must be at least 1')
    if page_size < 1:
        raise ValidationError('pageSize must be at least 1')

    return page, min(page_size, max_size)


def get_int_arg(name: str):
    """Optional integer query parameter (None when absent)."""
    if not request.args.get(name):
        return None
    return _int_arg(name, None)
