"""Organisation settings stored as key/value rows."""
import logging
from decimal import Decimal
from typing import Dict, Mapping

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from qms.models import Setting
from qms.exceptions import ValidationError
from qms.utils.money import normalize_tax_rate, normalize_currency, to_decimal

logger = logging.getLogger(__name__)

ORG_NAME = 'org.name'
ORG_LOGO_URL = 'org.logoUrl'
ORG_CURRENCY = 'org.currency'
ORG_ADDRESS = 'org.address'
ORG_PHONE = 'org.phone'
ORG_EMAIL = 'org.email'
ORG_WEBSITE = 'org.website'
ORG_PREPARED_BY = 'org.preparedBy'
TAX_RATE = 'tax.rate'
BANK_ACCOUNT_PREFIX = 'bank.'

MAX_VALUE_LENGTH = 2000


def default_settings() -> Dict[str, str]:
    """Defaults used for keys that were never stored."""
    config = current_app.config if has_app_context() else {}
    return {
        ORG_NAME: config.get('BUSINESS_NAME', 'QMS Inc.'),
        ORG_LOGO_URL: '',
        ORG_CURRENCY: config.get('DEFAULT_CURRENCY', 'USD'),
        ORG_ADDRESS: config.get('BUSINESS_ADDRESS', ''),
        ORG_PHONE: config.get('BUSINESS_PHONE', ''),
        ORG_EMAIL: config.get('BUSINESS_EMAIL', ''),
        ORG_WEBSITE: '',
        ORG_PREPARED_BY: 'Sales Team',
        TAX_RATE: config.get('DEFAULT_TAX_RATE', '0.00'),
    }


def get_settings(session: Session) -> Dict[str, str]:
    """All settings: defaults overlaid with stored values."""
    settings = default_settings()
    for row in session.query(Setting).order_by(Setting.key).all():
        settings[row.key] = row.value
    return settings


def get_setting(session: Session, key: str, default: str = None) -> str:
    row = session.query(Setting).filter(Setting.key == key).first()
    if row is not None:
        return row.value
    return default_settings().get(key, default)


def get_default_tax_rate(session: Session) -> Decimal:
    """Tax rate fraction used when a quotation does not specify one."""
    try:
        return normalize_tax_rate(get_setting(session, TAX_RATE, '0'))
    except ValueError:
        logger.warning("Stored tax.rate is invalid, falling back to 0")
        return Decimal('0')


def get_default_currency(session: Session) -> str:
    try:
        return normalize_currency(get_setting(session, ORG_CURRENCY, 'USD'))
    except ValueError:
        logger.warning("Stored org.currency is invalid, falling back to USD")
        return 'USD'


def _validate(values: Mapping[str, str]) -> Dict[str, str]:
    """Normalise known keys; collect every problem before failing."""
    errors = []
    cleaned = {}

    for key, value in values.items():
        key = key.strip()
        if not key:
            errors.append({'key': key, 'message': 'Setting key cannot be empty'})
            continue
        if len(value) > MAX_VALUE_LENGTH:
            errors.append({'key': key, 'message': f'Value exceeds {MAX_VALUE_LENGTH} characters'})
            continue

        if key == TAX_RATE:
            try:
                value = str(normalize_tax_rate(to_decimal(value)))
            except ValueError as e:
                errors.append({'key': key, 'message': str(e)})
                continue
        elif key == ORG_CURRENCY:
            try:
                value = normalize_currency(value)
            except ValueError as e:
                errors.append({'key': key, 'message': str(e)})
                continue
        elif key.startswith(BANK_ACCOUNT_PREFIX):
            try:
                normalize_currency(key[len(BANK_ACCOUNT_PREFIX):])
            except ValueError as e:
                errors.append({'key': key, 'message': str(e)})
                continue

        cleaned[key] = value

    if errors:
        raise ValidationError('Invalid settings', details=errors)
    return cleaned


def stage_settings(session: Session, values: Mapping[str, str]) -> Dict[str, str]:
    """
    Validate the given settings and add the upserts to the session without
    committing. Returns the cleaned values.

    Raises:
        ValidationError: tax.rate outside 0..1 or unsupported org.currency
    """
    cleaned = _validate(values)
    if not cleaned:
        return cleaned

    existing = {
        row.key: row
        for row in session.query(Setting).filter(Setting.key.in_(list(cleaned.keys()))).all()
    }
    for key, value in cleaned.items():
        row = existing.get(key)
        if row is None:
            session.add(Setting(key=key, value=value))
        else:
            row.value = value
    return cleaned


def update_settings(session: Session, values: Mapping[str, str]) -> Dict[str, str]:
    """
    Upsert the given settings and return the full settings map.

    Raises:
        ValidationError: tax.rate outside 0..1 or unsupported org.currency
    """
    try:
        cleaned = stage_settings(session, values)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Updated settings: {', '.join(sorted(cleaned.keys()))}")
    return get_settings(session)
