"""Models package - Import all models for SQLAlchemy registration."""
from tripledger.models.trip import Trip, Participant, ParticipantRole
from tripledger.models.expense import Expense, ExpenseSplit, SplitMode, SETTLEMENT_LABEL

__all__ = [
    "Trip",
    "Participant",
    "ParticipantRole",
    "Expense",
    "ExpenseSplit",
    "SplitMode",
    "SETTLEMENT_LABEL",
]
