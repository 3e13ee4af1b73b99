"""Client model."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from qms.database import Base, BigIntegerPK


class Client(Base):
    """Client (the party a quotation is addressed to)."""

    __tablename__ = 'client'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(200), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    quotations = relationship('Quotation', back_populates='client')

    @property
    def display_name(self):
        """Name as printed on documents: "John Smith (Acme Corporation)"."""
        return f"{self.name} ({self.company or 'Individual'})"

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}')>"
