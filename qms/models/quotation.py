"""Quotation model for quotations and price information records."""
import enum
from datetime import date
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, Date, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from qms.database import Base, BigIntegerPK


class QuotationStatus(enum.Enum):
    """Quotation status enum."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class QuotationKind(enum.Enum):
    """Record type. Price information is a quotation-like record with its own numbering prefix."""
    QUOTATION = "QUOTATION"
    PRICE_INFORMATION = "PRICE_INFORMATION"


OPEN_STATUSES = (QuotationStatus.DRAFT.value, QuotationStatus.SENT.value)


class Quotation(Base):
    """
    Quotation.

    Totals (subtotal, tax_amount, total) are derived from the line items,
    tax_rate and discount and are recomputed whenever the quotation is saved.
    """

    __tablename__ = 'quotation'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    number = Column(String(64), nullable=False, unique=True)
    kind = Column(String(20), nullable=False, default=QuotationKind.QUOTATION.value)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=False)
    created_by_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    status = Column(String(20), nullable=False, default=QuotationStatus.DRAFT.value)
    currency = Column(String(3), nullable=False, default='USD')
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(6, 4), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    issued_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    valid_until = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client', back_populates='quotations')
    created_by = relationship('User')
    items = relationship(
        'QuotationItem',
        back_populates='quotation',
        cascade='all, delete-orphan',
        order_by='QuotationItem.position'
    )

    def __repr__(self):
        return f"<Quotation(id={self.id}, number='{self.number}', status='{self.status}', total={self.total})>"

    @property
    def is_open(self):
        return self.status in OPEN_STATUSES

    @property
    def is_expired(self):
        """Check if quotation is expired (calculated, not stored)."""
        if self.status == QuotationStatus.EXPIRED.value:
            return True
        if self.is_open and self.valid_until:
            return date.today() > self.valid_until
        return False

    @property
    def client_name(self):
        return self.client.name if self.client else None
