"""Models package - exports all SQLAlchemy models."""
from qms.models.user import User, UserRole
from qms.models.client import Client
from qms.models.quotation import Quotation, QuotationStatus, QuotationKind, OPEN_STATUSES
from qms.models.quotation_item import QuotationItem
from qms.models.setting import Setting
from qms.models.number_sequence import NumberSequence

__all__ = [
    'User', 'UserRole',
    'Client',
    'Quotation', 'QuotationStatus', 'QuotationKind', 'OPEN_STATUSES',
    'QuotationItem',
    'Setting',
    'NumberSequence',
]
