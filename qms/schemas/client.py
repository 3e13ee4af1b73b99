"""Client payloads."""
import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from qms.schemas.base import CamelModel

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class ClientIn(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=120)
    state: Optional[str] = Field(None, max_length=120)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = None

    @field_validator('email')
    @classmethod
    def check_email(cls, value):
        if not value:
            return None
        if not EMAIL_PATTERN.match(value):
            raise ValueError('Invalid email address')
        return value


class ClientOut(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
