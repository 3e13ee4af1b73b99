"""
Quotation numbering.

Numbers look like ``JS19102026-03``: the preparer's initials, the issue date
as DDMMYYYY and a two-digit count of documents issued that day. The daily
count comes from a locked row in ``number_sequence`` so concurrent writers
never receive the same value.
"""
import logging
import re
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qms.models import NumberSequence, Quotation, QuotationKind

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = 'quotation'
FALLBACK_INITIALS = 'XX'
PRICE_INFORMATION_PREFIX = 'PRICE-'

_NON_ALNUM = re.compile(r'[^A-Z0-9]')


def _clean(value: str) -> str:
    return _NON_ALNUM.sub('', value.upper())


def derive_initials(name: Optional[str], email: Optional[str] = None) -> str:
    """
    Two-character initials for a user.

    Rules, in order:
    - two or more words in the name: first letter of the first two words
    - a single word: its first two characters
    - otherwise the first two characters of the email local part
    - otherwise "XX"

    Examples:
        derive_initials('Admin User') -> "AU"
        derive_initials('madonna') -> "MA"
        derive_initials('', 'jd@example.com') -> "JD"
        derive_initials(None, None) -> "XX"
    """
    parts = [p for p in (name or '').split() if p]
    if len(parts) >= 2:
        initials = _clean(parts[0][:1] + parts[1][:1])
    elif len(parts) == 1:
        initials = _clean(parts[0])[:2]
    else:
        initials = ''

    if len(initials) == 2:
        return initials

    if email and '@' in email:
        initials = _clean(email.split('@')[0])[:2]
        if len(initials) == 2:
            return initials

    return FALLBACK_INITIALS


def format_date_ddmmyyyy(day: date) -> str:
    """date(2026, 10, 9) -> "09102026"."""
    return day.strftime('%d%m%Y')


def _locked_sequence(session: Session, scope: str, day: date) -> Optional[NumberSequence]:
    return session.query(NumberSequence).filter(
        NumberSequence.scope == scope,
        NumberSequence.day == day
    ).with_for_update().first()


def number_exists(session: Session, number: str) -> bool:
    """True when a quotation or price information record already uses `number`."""
    return session.query(Quotation.id).filter(Quotation.number == number).first() is not None


def next_daily_sequence(session: Session, day: date, scope: str = DEFAULT_SCOPE) -> int:
    """
    Reserve the next value of the (scope, day) counter.

    Runs inside the caller's transaction: the counter row stays locked until
    the caller commits, so two requests numbering on the same day serialize.
    Call this before adding other objects to the session: losing the race to
    create the day's row rolls the session back.
    """
    sequence = _locked_sequence(session, scope, day)

    if sequence is None:
        try:
            sequence = NumberSequence(scope=scope, day=day, last_value=0)
            session.add(sequence)
            session.flush()
        except IntegrityError:
            # Another writer created today's row first
            session.rollback()
            logger.info(f"Number sequence {scope}/{day} created concurrently, retrying with lock")
            sequence = _locked_sequence(session, scope, day)
            if sequence is None:
                raise

    sequence.last_value += 1
    session.flush()
    return sequence.last_value


def generate_quotation_number(
    session: Session,
    user=None,
    day: Optional[date] = None,
    kind: str = QuotationKind.QUOTATION.value,
) -> str:
    """
    Build the number for a new quotation or price information record.

    Quotations:         [INITIALS][DDMMYYYY]-[SEQ]         e.g. AU19102026-01
    Price information:  PRICE-[INITIALS][DDMMYYYY]-[SEQ]   e.g. PRICE-AU19102026-02

    Both kinds draw from the same daily counter. Numbers already present
    (imported records, rows written outside the counter) are skipped and the
    counter moves past them.
    """
    day = day or date.today()
    initials = derive_initials(
        getattr(user, 'name', None),
        getattr(user, 'email', None)
    )
    prefix = PRICE_INFORMATION_PREFIX if kind == QuotationKind.PRICE_INFORMATION.value else ''

    while True:
        seq = next_daily_sequence(session, day)
        number = f"{prefix}{initials}{format_date_ddmmyyyy(day)}-{str(seq).zfill(2)}"
        if not number_exists(session, number):
            return number
        logger.info(f"Quotation number {number} already exists, skipping")
