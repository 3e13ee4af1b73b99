"""
Authentication service for user management.

Handles registration, credential checks and bearer token issue/verification.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qms.models import User, UserRole
from qms.exceptions import AuthenticationError, ConflictError, BusinessLogicError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _find_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def register_user(session: Session, email: str, name: str, password: str,
                  role: str = UserRole.USER.value) -> User:
    """
    Create a local user.

    Raises:
        ConflictError: email already registered
        BusinessLogicError: password too short
    """
    if len(password or '') < MIN_PASSWORD_LENGTH:
        raise BusinessLogicError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    if _find_by_email(session, email):
        raise ConflictError('Email already in use')

    try:
        user = User(email=email.strip().lower(), name=name.strip(), role=role, active=True)
        user.set_password(password)
        session.add(user)
        session.commit()
    except IntegrityError:
        # Race condition: same email registered concurrently
        session.rollback()
        raise ConflictError('Email already in use')
    except Exception:
        session.rollback()
        raise

    logger.info(f"Registered user {user.email} (role={user.role})")
    return user


def authenticate(session: Session, email: str, password: str) -> User:
    """
    Check credentials.

    Raises:
        AuthenticationError: unknown email, inactive user or wrong password
    """
    user = _find_by_email(session, email)
    if not user or not user.active or not user.check_password(password):
        logger.warning(f"Failed login attempt for {email}")
        raise AuthenticationError('Invalid credentials')
    return user


def issue_token(user: User) -> str:
    """Signed bearer token carrying the user id, role and email."""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user.id),
        'role': user.role,
        'email': user.email,
        'iat': now,
        'exp': now + timedelta(days=current_app.config.get('JWT_EXPIRES_DAYS', 7)),
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET'],
        algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256')
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer token and return its claims.

    Raises:
        AuthenticationError: expired or invalid token
    """
    try:
        return jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')]
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token expired')
    except jwt.InvalidTokenError:
        raise AuthenticationError('Invalid token')


def get_user_from_token(session: Session, token: str) -> User:
    """Resolve the active user a token was issued to."""
    claims = decode_token(token)
    try:
        user_id = int(claims.get('sub'))
    except (TypeError, ValueError):
        raise AuthenticationError('Invalid token')

    user = session.query(User).filter(User.id == user_id, User.active == True).first()  # noqa: E712
    if not user:
        raise AuthenticationError('Invalid token')
    return user


def update_profile(session: Session, user: User, data: Dict[str, Any]) -> User:
    """Update name and contact fields of the current user."""
    try:
        for field in ('name', 'company', 'phone_country_code', 'phone_number'):
            if field in data and data[field] is not None:
                setattr(user, field, data[field].strip() if isinstance(data[field], str) else data[field])
        if not (user.name or '').strip():
            raise BusinessLogicError('Name is required')
        session.commit()
    except Exception:
        session.rollback()
        raise
    return user


def change_password(session: Session, user: User, current_password: str, new_password: str) -> None:
    """
    Replace the user's password after checking the current one.

    Raises:
        BusinessLogicError: current password is wrong or new password too short
    """
    if not user.check_password(current_password):
        raise BusinessLogicError('Current password is incorrect')
    if len(new_password or '') < MIN_PASSWORD_LENGTH:
        raise BusinessLogicError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    try:
        user.set_password(new_password)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Password changed for {user.email}")
