"""Setting model - organisation-wide key/value configuration."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from qms.database import Base


class Setting(Base):
    """Key/value setting (org.name, tax.rate, ...)."""

    __tablename__ = 'setting'

    key = Column(String(120), primary_key=True)
    value = Column(Text, nullable=False, default='')
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Setting(key='{self.key}', value='{self.value}')>"
