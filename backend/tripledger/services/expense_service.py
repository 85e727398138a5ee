"""
Expense service for expense-related business logic.
"""
import logging
from sqlalchemy.orm import Session, selectinload
from typing import List
from tripledger.core.exceptions import NotFoundError
from tripledger.models.trip import Trip, Participant
from tripledger.models.expense import Expense, ExpenseSplit
from tripledger.schemas.expense import ExpenseCreate, ExpenseRead, ExpenseUpdate
from tripledger.schemas.participant import ParticipantRead
from tripledger.services.events import emit
from tripledger.services.split_allocator import allocate_split, parse_amount

logger = logging.getLogger(__name__)


def get_trip(trip_id: str, db: Session) -> Trip:
    """Fetch a trip or raise NotFoundError."""
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def get_expense(expense_id: str, db: Session) -> Expense:
    """Fetch an expense or raise NotFoundError."""
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def load_participants(trip_id: str, db: Session) -> List[ParticipantRead]:
    """Snapshot of a trip's roster in the order participants joined."""
    participants = db.query(Participant).filter(
        Participant.trip_id == trip_id
    ).order_by(Participant.created_at, Participant.id).all()
    return [ParticipantRead.model_validate(p) for p in participants]


def load_expenses(trip_id: str, db: Session) -> List[ExpenseRead]:
    """Snapshot of a trip's expenses with splits, oldest first."""
    expenses = db.query(Expense).options(
        selectinload(Expense.splits)
    ).filter(
        Expense.trip_id == trip_id
    ).order_by(Expense.date, Expense.created_at).all()
    return [ExpenseRead.model_validate(e) for e in expenses]


def _add_splits(expense_id: str, splits: dict, db: Session) -> None:
    for participant_id, amount in splits.items():
        db.add(ExpenseSplit(
            expense_id=expense_id,
            participant_id=participant_id,
            amount=amount
        ))


def create_expense(trip_id: str, data: ExpenseCreate, db: Session) -> Expense:
    """Create an expense and its splits. Raises ValidationError before writing anything."""
    get_trip(trip_id, db)
    participants = load_participants(trip_id, db)
    splits = allocate_split(
        data.amount, data.payer_id, participants, data.split_mode, data.manual_splits
    )

    expense = Expense(
        trip_id=trip_id,
        payer_id=data.payer_id,
        title=data.title,
        amount=parse_amount(data.amount),
        category=data.category,
        date=data.date,
        split_mode=data.split_mode
    )
    db.add(expense)
    db.flush()

    _add_splits(expense.id, splits, db)
    db.commit()
    db.refresh(expense)

    logger.info(f"Created expense {expense.id} on trip {trip_id} ({data.split_mode.value} split)")
    emit("expenses-changed", trip_id)
    return expense


def update_expense(expense_id: str, data: ExpenseUpdate, db: Session) -> Expense:
    """Update an expense and replace its splits."""
    expense = get_expense(expense_id, db)
    participants = load_participants(expense.trip_id, db)
    splits = allocate_split(
        data.amount, data.payer_id, participants, data.split_mode, data.manual_splits
    )

    expense.title = data.title
    expense.amount = parse_amount(data.amount)
    expense.category = data.category
    expense.payer_id = data.payer_id
    expense.date = data.date
    expense.split_mode = data.split_mode

    # Delete existing splits
    db.query(ExpenseSplit).filter(
        ExpenseSplit.expense_id == expense_id
    ).delete(synchronize_session=False)
    _add_splits(expense_id, splits, db)

    db.commit()
    db.refresh(expense)

    emit("expenses-changed", expense.trip_id)
    return expense


def delete_expense(expense_id: str, db: Session) -> str:
    """Delete an expense with its splits. Returns the trip id."""
    expense = get_expense(expense_id, db)
    trip_id = expense.trip_id
    db.delete(expense)
    db.commit()

    emit("expenses-changed", trip_id)
    return trip_id
