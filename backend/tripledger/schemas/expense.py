"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional
from datetime import date as dt_date, datetime
from decimal import Decimal
from tripledger.models.expense import SplitMode, SETTLEMENT_LABEL


class SplitRead(BaseModel):
    """Amount one participant owes within an expense."""
    model_config = ConfigDict(from_attributes=True)

    participant_id: str
    amount: Decimal


class ExpenseRead(BaseModel):
    """In-memory snapshot of an expense with its splits."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: Optional[str] = None
    title: str = ""
    amount: Decimal
    category: Optional[str] = None
    payer_id: str
    date: Optional[dt_date] = None
    split_mode: Optional[SplitMode] = None
    splits: List[SplitRead] = []

    @property
    def is_settlement(self) -> bool:
        return self.category == SETTLEMENT_LABEL or self.title == SETTLEMENT_LABEL


class ExpenseCreate(BaseModel):
    """
    Schema for expense creation.

    manual_splits is required for exact mode and ignored for equal mode.
    """
    title: str
    amount: Decimal
    category: Optional[str] = None
    payer_id: Optional[str] = None
    date: dt_date
    split_mode: SplitMode = SplitMode.EQUAL
    manual_splits: Optional[Dict[str, Decimal]] = None


class ExpenseUpdate(ExpenseCreate):
    """Schema for expense update. Splits are always recomputed."""
    pass


class ExpenseResponse(ExpenseRead):
    """Schema for expense response."""
    created_at: datetime
    updated_at: datetime
