"""QuotationItem model for quotation line items."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from qms.database import Base, BigIntegerPK


class QuotationItem(Base):
    """
    Quotation line item.

    line_total is quantity * unit_price, stored rounded to 2 decimals.
    """

    __tablename__ = 'quotation_item'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    quotation_id = Column(BigInteger, ForeignKey('quotation.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    category = Column(String(80), nullable=True)
    item_description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    line_total = Column(Numeric(14, 2), nullable=False)

    # Relationships
    quotation = relationship('Quotation', back_populates='items')

    def __repr__(self):
        return f"<QuotationItem(id={self.id}, quotation_id={self.quotation_id}, description='{self.description}', qty={self.quantity}, total={self.line_total})>"
