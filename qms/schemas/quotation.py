"""Quotation and price information payloads."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from qms.models import QuotationStatus
from qms.schemas.base import CamelModel
from qms.utils.money import normalize_currency

STATUS_VALUES = tuple(s.value for s in QuotationStatus)


def _check_status(value):
    if value is None:
        return None
    status = value.upper()
    if status not in STATUS_VALUES:
        raise ValueError(f"Status must be one of: {', '.join(STATUS_VALUES)}")
    return status


def _check_currency(value):
    if not value:
        return None
    return normalize_currency(value)


class QuotationItemIn(CamelModel):
    description: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    category: Optional[str] = Field(None, max_length=80)
    item_description: Optional[str] = None


class QuotationIn(CamelModel):
    client_id: int
    items: List[QuotationItemIn] = Field(min_length=1)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    discount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    status: Optional[str] = None
    issued_at: Optional[datetime] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = None

    check_status = field_validator('status')(_check_status)
    check_currency = field_validator('currency')(_check_currency)


class QuotationUpdateIn(CamelModel):
    """Partial update; omitted fields keep their stored values, items replace the whole list."""
    client_id: Optional[int] = None
    items: Optional[List[QuotationItemIn]] = Field(None, min_length=1)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    discount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    status: Optional[str] = None
    issued_at: Optional[datetime] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = None

    check_status = field_validator('status')(_check_status)
    check_currency = field_validator('currency')(_check_currency)


class StatusIn(CamelModel):
    status: str

    check_status = field_validator('status')(_check_status)


class QuotationItemOut(CamelModel):
    id: int
    position: int
    description: str
    category: Optional[str] = None
    item_description: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float


class QuotationSummaryOut(CamelModel):
    id: int
    number: str
    kind: str
    client_id: int
    client_name: Optional[str] = None
    status: str
    currency: str
    total: float
    valid_until: Optional[date] = None
    created_at: Optional[datetime] = None


class QuotationOut(QuotationSummaryOut):
    subtotal: float
    tax_rate: float
    tax_amount: float
    discount: float
    issued_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    is_expired: bool = False
    updated_at: Optional[datetime] = None
    items: List[QuotationItemOut] = []
