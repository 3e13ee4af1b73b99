"""
Unit tests for the quotation service.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from qms.exceptions import ConflictError, NotFoundError
from qms.models import Quotation
from qms.services.client_service import create_client, delete_client
from qms.services import quotation_service
from qms.services.quotation_service import (
    create_quotation, update_quotation, expire_overdue_quotations
)


def _payload(client_id, **overrides):
    data = {
        'client_id': client_id,
        'items': [{'description': 'Design', 'quantity': 2, 'unit_price': '250.00'}],
        'tax_rate': Decimal('0.18'),
        'currency': 'USD',
    }
    data.update(overrides)
    return data


class TestCreate:

    def test_number_uses_preparer_initials(self, session, admin_user, acme):
        quotation = create_quotation(session, _payload(acme.id), user=admin_user, today=date(2026, 10, 19))

        assert quotation.number == 'AU19102026-01'
        assert quotation.created_by_id == admin_user.id
        assert quotation.total == Decimal('590.00')

    def test_valid_until_default(self, session, acme):
        quotation = create_quotation(session, _payload(acme.id, issued_at=datetime(2026, 10, 1)))

        assert quotation.valid_until == date(2026, 10, 31)

    def test_unknown_client_leaves_nothing(self, session):
        with pytest.raises(NotFoundError):
            create_quotation(session, _payload(12345))

        assert session.query(Quotation).count() == 0

    def test_number_taken_concurrently_is_retried(self, session, regular_user, acme, monkeypatch):
        day = date(2026, 10, 19)
        create_quotation(session, _payload(acme.id), user=regular_user, today=day)
        numbers = iter(['JS19102026-01', 'JS19102026-05'])
        monkeypatch.setattr(
            quotation_service, 'generate_quotation_number', lambda *args, **kwargs: next(numbers)
        )

        quotation = create_quotation(session, _payload(acme.id), user=regular_user, today=day)

        assert quotation.number == 'JS19102026-05'
        assert session.query(Quotation).count() == 2


class TestUpdate:

    def test_clear_valid_until(self, session, acme):
        quotation = create_quotation(session, _payload(acme.id))

        updated = update_quotation(session, quotation.id, {'valid_until': None})

        assert updated.valid_until is None

    def test_expired_quotation_cannot_be_edited(self, session, acme):
        quotation = create_quotation(session, _payload(acme.id, valid_until=date(2026, 1, 1)))
        expire_overdue_quotations(session, today=date(2026, 1, 2))

        with pytest.raises(ConflictError):
            update_quotation(session, quotation.id, {'notes': 'too late'})


class TestExpire:

    def test_only_open_overdue_quotations(self, session, acme):
        overdue = create_quotation(session, _payload(acme.id, valid_until=date(2026, 1, 1)))
        current = create_quotation(session, _payload(acme.id, valid_until=date(2026, 3, 1)))

        assert expire_overdue_quotations(session, today=date(2026, 2, 1)) == 1

        assert session.get(Quotation, overdue.id).status == 'EXPIRED'
        assert session.get(Quotation, current.id).status == 'DRAFT'


class TestClientDeletion:

    def test_blocked_by_quotations(self, session):
        client = create_client(session, {'name': 'Busy Client'})
        create_quotation(session, _payload(client.id))

        with pytest.raises(ConflictError) as exc:
            delete_client(session, client.id)

        assert exc.value.payload == {'quotations': 1}
