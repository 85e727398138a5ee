"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, Date, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel
import enum

SETTLEMENT_LABEL = "Settlement"


class SplitMode(str, enum.Enum):
    """How an expense was divided when it was entered."""
    EQUAL = "equal"
    EXACT = "exact"


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"

    trip_id = Column(String(36), ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    category = Column(String(50), nullable=True)
    date = Column(Date, nullable=False, index=True)
    split_mode = Column(SQLEnum(SplitMode), nullable=True)  # Null for rows entered before tagging

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    splits = relationship(
        "ExpenseSplit",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseSplit.created_at"
    )


class ExpenseSplit(BaseModel):
    """Amount a participant is responsible for within one expense."""
    __tablename__ = "expense_splits"

    expense_id = Column(String(36), ForeignKey("expenses.id"), nullable=False, index=True)
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="splits")
