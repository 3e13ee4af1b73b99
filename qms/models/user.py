"""User model - application users with email/password authentication."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from qms.database import Base, BigIntegerPK


class UserRole(enum.Enum):
    """User roles. ADMIN may change organisation settings."""
    USER = 'USER'
    ADMIN = 'ADMIN'


class User(Base):
    """User model - people who prepare and send quotations."""

    __tablename__ = 'app_user'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    active = Column(Boolean, nullable=False, default=True)

    # Profile fields shown on generated documents
    company = Column(String(200), nullable=True)
    phone_country_code = Column(String(8), nullable=True)
    phone_number = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def set_password(self, password):
        """Store a scrypt hash of the password."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
