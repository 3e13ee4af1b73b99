"""
Unit tests for SQLAlchemy models.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from qms.models import User, Client, Quotation, QuotationItem, NumberSequence


class TestUserModel:
    """Tests for User model."""

    def test_password_hashing(self, session):
        user = User(email='hash@test.com', name='Hash Test')
        user.set_password('securepassword')
        session.add(user)
        session.commit()

        assert user.password_hash != 'securepassword'
        assert user.check_password('securepassword')
        assert not user.check_password('wrong')

    def test_default_role(self, session):
        user = User(email='role@test.com', name='Role Test')
        user.set_password('securepassword')
        session.add(user)
        session.commit()

        assert user.role == 'USER'
        assert user.active is True
        assert not user.is_admin

    def test_email_unique(self, session, regular_user):
        duplicate = User(email=regular_user.email, name='Duplicate')
        duplicate.set_password('password123')
        session.add(duplicate)

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestClientModel:

    def test_display_name(self):
        assert Client(name='John Smith', company='Acme').display_name == 'John Smith (Acme)'
        assert Client(name='John Smith').display_name == 'John Smith (Individual)'


class TestQuotationModel:
    """Tests for Quotation model."""

    def _quotation(self, client, number='AU19102026-01', **kwargs):
        quotation = Quotation(
            number=number,
            client=client,
            currency='USD',
            subtotal=Decimal('100.00'),
            tax_rate=Decimal('0.18'),
            tax_amount=Decimal('18.00'),
            discount=Decimal('0.00'),
            total=Decimal('118.00'),
            **kwargs
        )
        quotation.items = [
            QuotationItem(position=0, description='Widget', quantity=2,
                          unit_price=Decimal('50.00'), line_total=Decimal('100.00'))
        ]
        return quotation

    def test_defaults(self, session, acme):
        quotation = self._quotation(acme)
        session.add(quotation)
        session.commit()

        assert quotation.id is not None
        assert quotation.status == 'DRAFT'
        assert quotation.kind == 'QUOTATION'
        assert quotation.client_name == 'John Smith'
        assert len(quotation.items) == 1

    def test_number_unique(self, session, acme):
        session.add(self._quotation(acme))
        session.commit()

        session.add(self._quotation(acme))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_items_deleted_with_quotation(self, session, acme):
        quotation = self._quotation(acme)
        session.add(quotation)
        session.commit()

        session.delete(quotation)
        session.commit()

        assert session.query(QuotationItem).count() == 0

    def test_is_expired(self, acme):
        past = self._quotation(acme, status='SENT', valid_until=date.today() - timedelta(days=1))
        future = self._quotation(acme, status='SENT', valid_until=date.today() + timedelta(days=1))
        accepted = self._quotation(acme, status='ACCEPTED', valid_until=date.today() - timedelta(days=1))

        assert past.is_expired
        assert not future.is_expired
        assert not accepted.is_expired


class TestNumberSequenceModel:

    def test_scope_day_unique(self, session):
        session.add(NumberSequence(scope='quotation', day=date(2026, 10, 19), last_value=1))
        session.commit()

        session.add(NumberSequence(scope='quotation', day=date(2026, 10, 19), last_value=1))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
