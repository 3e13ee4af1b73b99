"""Auth payloads and the public user representation."""
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from qms.schemas.base import CamelModel
from qms.schemas.client import EMAIL_PATTERN


class LoginIn(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class RegisterIn(CamelModel):
    email: str = Field(max_length=255)
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=6, max_length=128)

    @field_validator('email')
    @classmethod
    def check_email(cls, value):
        if not EMAIL_PATTERN.match(value):
            raise ValueError('Invalid email address')
        return value.lower()


class ProfileIn(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    company: Optional[str] = Field(None, max_length=200)
    phone_country_code: Optional[str] = Field(None, max_length=8)
    phone_number: Optional[str] = Field(None, max_length=50)


class PasswordIn(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    role: str
    company: Optional[str] = None
    phone_country_code: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[datetime] = None


class TokenOut(CamelModel):
    token: str
    user: UserOut
