"""
Pydantic schemas for balances and settlements.
"""
from pydantic import BaseModel
from typing import List, Dict
from datetime import date
from decimal import Decimal


class Settlement(BaseModel):
    """A pending transfer from a debtor to a creditor."""
    from_participant_id: str
    from_name: str
    to_participant_id: str
    to_name: str
    amount: Decimal


class BalanceEntry(BaseModel):
    """Net balance of one participant. Positive = owed money by the group."""
    participant_id: str
    name: str
    amount: Decimal


class SettlementPlan(BaseModel):
    """Current balances with the transfers that settle them."""
    trip_id: str
    currency: str
    balances: List[BalanceEntry]
    settlements: List[Settlement]


class DaySettlementState(BaseModel):
    """Settlement state after all expenses up to and including a date."""
    date: date
    balances: List[BalanceEntry]
    settlements: List[Settlement]


class TripSummary(BaseModel):
    """Trip totals, excluding recorded settlements."""
    trip_id: str
    currency: str
    total_cost: Decimal
    paid_by_participant: Dict[str, Decimal]  # participant_id -> amount paid
    share_by_participant: Dict[str, Decimal]  # participant_id -> share of expenses
    category_totals: Dict[str, Decimal]


class SettlementRecord(BaseModel):
    """Schema for recording an executed settlement."""
    from_participant_id: str
    to_participant_id: str
    amount: Decimal
    date: date
