"""NumberSequence model - per-day counters for document numbering."""
from sqlalchemy import Column, String, Integer, Date, UniqueConstraint
from qms.database import Base, BigIntegerPK


class NumberSequence(Base):
    """
    Last value issued for a (scope, day) pair.

    Rows are locked with SELECT ... FOR UPDATE while incrementing; the unique
    constraint resolves the race when two writers create the day's row.
    """

    __tablename__ = 'number_sequence'
    __table_args__ = (
        UniqueConstraint('scope', 'day', name='uq_number_sequence_scope_day'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    scope = Column(String(40), nullable=False)
    day = Column(Date, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<NumberSequence(scope='{self.scope}', day={self.day}, last_value={self.last_value})>"
