"""Quotation service: numbering, totals, status lifecycle and CRUD."""
import logging
from datetime import datetime, date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from qms.database import contains_pattern, LIKE_ESCAPE
from qms.models import Quotation, QuotationItem, QuotationStatus, QuotationKind, Client, OPEN_STATUSES
from qms.exceptions import NotFoundError, ConflictError, InvalidStatusTransitionError, BusinessLogicError
from qms.services.client_service import get_client
from qms.services.numbering_service import generate_quotation_number, number_exists
from qms.services.settings_service import get_default_tax_rate, get_default_currency
from qms.services.totals_service import compute_totals, line_total
from qms.utils.money import to_money, normalize_tax_rate, normalize_currency

logger = logging.getLogger(__name__)

DRAFT = QuotationStatus.DRAFT.value
SENT = QuotationStatus.SENT.value
ACCEPTED = QuotationStatus.ACCEPTED.value
REJECTED = QuotationStatus.REJECTED.value
EXPIRED = QuotationStatus.EXPIRED.value

# draft -> sent -> {accepted, rejected, expired}; terminal states are final
ALLOWED_TRANSITIONS = {
    DRAFT: {SENT, REJECTED, EXPIRED},
    SENT: {DRAFT, ACCEPTED, REJECTED, EXPIRED},
    ACCEPTED: set(),
    REJECTED: set(),
    EXPIRED: set(),
}

# Statuses a quotation may be created with
INITIAL_STATUSES = {DRAFT, SENT}

# Inserts retried when the unique number was taken by a concurrent writer
MAX_NUMBER_ATTEMPTS = 3


def check_transition(current: str, requested: str) -> None:
    """
    Validate a status change.

    Re-applying the current status is allowed and changes nothing.

    Raises:
        InvalidStatusTransitionError: requested is not reachable from current
    """
    if requested == current:
        return
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if requested not in allowed:
        raise InvalidStatusTransitionError(current, requested, allowed)


def _valid_days() -> int:
    if has_app_context():
        return current_app.config.get('QUOTE_VALID_DAYS', 30)
    return 30


def _base_query(session: Session, kind: Optional[str]):
    query = session.query(Quotation).options(
        joinedload(Quotation.client),
        selectinload(Quotation.items)
    )
    if kind:
        query = query.filter(Quotation.kind == kind)
    return query


def list_quotations(session: Session, page: int = 1, page_size: int = 20,
                    q: Optional[str] = None, status: Optional[str] = None,
                    kind: Optional[str] = QuotationKind.QUOTATION.value,
                    client_id: Optional[int] = None) -> Tuple[List[Quotation], int]:
    """
    Page through quotations, newest first.

    Args:
        q: case-insensitive substring search over quotation number and client name
        status: exact status filter
        kind: QUOTATION or PRICE_INFORMATION (None lists both)
        client_id: only quotations for this client

    Returns:
        (quotations on the page, total matching)
    """
    query = session.query(Quotation).outerjoin(Client, Quotation.client_id == Client.id)
    if kind:
        query = query.filter(Quotation.kind == kind)

    if status:
        query = query.filter(Quotation.status == status.upper())

    if client_id:
        query = query.filter(Quotation.client_id == client_id)

    search = (q or '').strip()
    if search:
        query = query.filter(
            or_(
                func.upper(Quotation.number).like(contains_pattern(search.upper()), escape=LIKE_ESCAPE),
                func.lower(Client.name).like(contains_pattern(search.lower()), escape=LIKE_ESCAPE)
            )
        )

    total = query.count()
    quotations = query.options(
        joinedload(Quotation.client),
        selectinload(Quotation.items)
    ).order_by(
        Quotation.created_at.desc(), Quotation.id.desc()
    ).offset((page - 1) * page_size).limit(page_size).all()

    return quotations, total


def get_quotation(session: Session, quotation_id: int, kind: Optional[str] = None) -> Quotation:
    quotation = _base_query(session, kind).filter(Quotation.id == quotation_id).first()
    if not quotation:
        raise NotFoundError(f'Quotation {quotation_id} not found')
    return quotation


def _lock_quotation(session: Session, quotation_id: int, kind: Optional[str]) -> Quotation:
    query = session.query(Quotation).filter(Quotation.id == quotation_id)
    if kind:
        query = query.filter(Quotation.kind == kind)
    quotation = query.with_for_update().first()
    if not quotation:
        raise NotFoundError(f'Quotation {quotation_id} not found')
    return quotation


def build_items(items_data: Iterable[Dict[str, Any]]) -> List[QuotationItem]:
    """Create QuotationItem rows (in order) from validated item dicts."""
    items = []
    for position, data in enumerate(items_data):
        quantity = int(data['quantity'])
        unit_price = to_money(data['unit_price'])
        items.append(QuotationItem(
            position=position,
            description=data['description'].strip(),
            category=data.get('category') or None,
            item_description=data.get('item_description') or None,
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total(quantity, unit_price)
        ))
    return items


def _apply_totals(quotation: Quotation) -> None:
    totals = compute_totals(quotation.items, quotation.tax_rate, quotation.discount)
    quotation.subtotal = totals.subtotal
    quotation.tax_amount = totals.tax_amount
    quotation.discount = totals.discount
    quotation.total = totals.total


def _new_quotation(session: Session, data: Dict[str, Any], user, kind: str,
                   number: str, status: str) -> Quotation:
    client = get_client(session, data['client_id'])

    tax_rate = data.get('tax_rate')
    tax_rate = get_default_tax_rate(session) if tax_rate is None else normalize_tax_rate(tax_rate)
    currency = data.get('currency')
    currency = get_default_currency(session) if not currency else normalize_currency(currency)

    issued_at = data.get('issued_at') or datetime.now()
    valid_until = data.get('valid_until')
    if valid_until is None:
        issued_day = issued_at.date() if isinstance(issued_at, datetime) else issued_at
        valid_until = issued_day + timedelta(days=_valid_days())

    quotation = Quotation(
        number=number,
        kind=kind,
        client=client,
        created_by_id=getattr(user, 'id', None),
        status=status,
        currency=currency,
        tax_rate=tax_rate,
        discount=to_money(data.get('discount') or 0),
        issued_at=issued_at,
        valid_until=valid_until,
        notes=(data.get('notes') or '').strip() or None,
    )
    quotation.items = build_items(data['items'])
    _apply_totals(quotation)

    return quotation


def create_quotation(session: Session, data: Dict[str, Any], user=None,
                     kind: str = QuotationKind.QUOTATION.value,
                     today: Optional[date] = None) -> Quotation:
    """
    Create a quotation (or price information record) with its line items.

    Args:
        data: validated payload with client_id, items and optional
              tax_rate, discount, currency, status, issued_at, valid_until, notes
        user: the preparer; their initials go into the number
        today: numbering date (defaults to the current date)

    Missing tax_rate and currency fall back to the tax.rate and org.currency
    settings; valid_until defaults to issue date + QUOTE_VALID_DAYS.

    Raises:
        NotFoundError: unknown client
        InvalidStatusTransitionError: initial status other than DRAFT or SENT
    """
    if not data.get('items'):
        raise BusinessLogicError('A quotation needs at least one item')

    status = (data.get('status') or DRAFT).upper()
    if status not in INITIAL_STATUSES:
        raise InvalidStatusTransitionError(DRAFT, status, INITIAL_STATUSES)

    for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
        number = None
        try:
            # Number first: reserving the day's counter may roll the session back
            number = generate_quotation_number(session, user, today, kind)
            quotation = _new_quotation(session, data, user, kind, number, status)
            session.add(quotation)
            session.commit()
            break
        except IntegrityError:
            session.rollback()
            # Another writer stored the same number after it was checked
            if number is None or attempt == MAX_NUMBER_ATTEMPTS or not number_exists(session, number):
                raise
            logger.warning(f"Quotation number {number} taken concurrently, retrying (attempt {attempt})")
        except Exception:
            session.rollback()
            raise

    logger.info(f"Created {kind.lower()} {quotation.number} (id={quotation.id}, total={quotation.total})")
    return quotation


def update_quotation(session: Session, quotation_id: int, data: Dict[str, Any],
                     kind: Optional[str] = None) -> Quotation:
    """
    Update a quotation, replacing all of its line items.

    Old items are deleted and the new ones inserted within the same
    transaction; totals are recomputed. Fields absent from `data` keep their
    current values.

    Raises:
        NotFoundError: unknown quotation or client
        ConflictError: the quotation is accepted, rejected or expired
        InvalidStatusTransitionError: disallowed status change
    """
    try:
        quotation = _lock_quotation(session, quotation_id, kind)

        if quotation.status not in OPEN_STATUSES:
            raise ConflictError(
                f'Quotation {quotation.number} is {quotation.status} and can no longer be edited'
            )

        if data.get('status'):
            requested = data['status'].upper()
            check_transition(quotation.status, requested)
            quotation.status = requested

        if data.get('client_id') and data['client_id'] != quotation.client_id:
            quotation.client = get_client(session, data['client_id'])

        if data.get('tax_rate') is not None:
            quotation.tax_rate = normalize_tax_rate(data['tax_rate'])
        if data.get('discount') is not None:
            quotation.discount = to_money(data['discount'])
        if data.get('currency'):
            quotation.currency = normalize_currency(data['currency'])
        if data.get('issued_at'):
            quotation.issued_at = data['issued_at']
        if 'valid_until' in data:
            quotation.valid_until = data['valid_until']
        if 'notes' in data:
            quotation.notes = (data['notes'] or '').strip() or None

        if data.get('items'):
            quotation.items = build_items(data['items'])

        _apply_totals(quotation)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Updated quotation {quotation.number} (total={quotation.total})")
    return get_quotation(session, quotation_id)


def change_status(session: Session, quotation_id: int, status: str,
                  kind: Optional[str] = None) -> Quotation:
    """
    Move a quotation through its lifecycle.

    Raises:
        NotFoundError: unknown quotation
        InvalidStatusTransitionError: disallowed status change
    """
    requested = status.upper()
    if requested not in ALLOWED_TRANSITIONS:
        raise BusinessLogicError(f'Unknown status {status}')

    try:
        quotation = _lock_quotation(session, quotation_id, kind)
        previous = quotation.status
        check_transition(previous, requested)
        quotation.status = requested
        session.commit()
    except Exception:
        session.rollback()
        raise

    if previous != requested:
        logger.info(f"Quotation {quotation.number}: {previous} -> {requested}")
    return get_quotation(session, quotation_id)


def delete_quotation(session: Session, quotation_id: int, kind: Optional[str] = None) -> None:
    try:
        quotation = _lock_quotation(session, quotation_id, kind)
        number = quotation.number
        session.delete(quotation)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Deleted quotation {number}")


def expire_overdue_quotations(session: Session, today: Optional[date] = None) -> int:
    """
    Mark open quotations whose validity date has passed as EXPIRED.

    Returns:
        number of quotations expired
    """
    today = today or date.today()
    try:
        overdue = session.query(Quotation).filter(
            Quotation.status.in_(OPEN_STATUSES),
            Quotation.valid_until.isnot(None),
            Quotation.valid_until < today
        ).with_for_update().all()

        for quotation in overdue:
            quotation.status = EXPIRED

        session.commit()
    except Exception:
        session.rollback()
        raise

    if overdue:
        logger.info(f"Expired {len(overdue)} quotation(s) past their validity date")
    return len(overdue)


def list_all_quotations(session: Session, kind: Optional[str] = None) -> List[Quotation]:
    """Every quotation with client and items loaded (reports and exports)."""
    return _base_query(session, kind).order_by(Quotation.created_at.asc(), Quotation.id.asc()).all()
