"""
Expense/split storage seam used by the split reconciler.

The reconciler only needs to list a trip's expenses and rewrite one
expense's splits, so the interface stays that small. The SQLAlchemy
implementation backs the API; tests use an in-memory one.
"""
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from tripledger.core.exceptions import RepositoryError
from tripledger.models.expense import Expense, ExpenseSplit, SplitMode
from tripledger.schemas.expense import ExpenseRead

logger = logging.getLogger(__name__)


class ExpenseSplitRepository(ABC):
    """Storage operations the reconciler depends on."""

    @abstractmethod
    def list_expenses_with_splits(self, trip_id: str) -> List[ExpenseRead]:
        """
        Fetch every expense of a trip with its splits.

        Raises:
            RepositoryError: If the expenses cannot be read
        """

    @abstractmethod
    def replace_splits(
        self,
        expense_id: str,
        new_splits: Mapping[str, Decimal],
        split_mode: Optional[SplitMode] = None
    ) -> None:
        """
        Delete an expense's splits and insert new_splits as one unit of work.

        If split_mode is given the expense is re-tagged with it. On failure
        the old splits must remain in place.

        Raises:
            RepositoryError: If the replacement fails
        """


class SqlAlchemyExpenseRepository(ExpenseSplitRepository):
    """Repository over a SQLAlchemy session. Commits once per expense."""

    def __init__(self, db: Session):
        self.db = db

    def list_expenses_with_splits(self, trip_id: str) -> List[ExpenseRead]:
        try:
            expenses = self.db.query(Expense).options(
                selectinload(Expense.splits)
            ).filter(
                Expense.trip_id == trip_id
            ).order_by(Expense.date, Expense.created_at).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching expenses for trip {trip_id}: {e}", exc_info=True)
            raise RepositoryError(f"Could not load expenses: {e}") from e
        return [ExpenseRead.model_validate(expense) for expense in expenses]

    def replace_splits(
        self,
        expense_id: str,
        new_splits: Mapping[str, Decimal],
        split_mode: Optional[SplitMode] = None
    ) -> None:
        try:
            expense = self.db.query(Expense).filter(Expense.id == expense_id).first()
            if expense is None:
                raise RepositoryError(f"Expense {expense_id} not found")

            # Delete old splits and insert the new set in the same transaction
            self.db.query(ExpenseSplit).filter(
                ExpenseSplit.expense_id == expense_id
            ).delete(synchronize_session=False)
            self.db.add_all([
                ExpenseSplit(expense_id=expense_id, participant_id=pid, amount=amount)
                for pid, amount in new_splits.items()
            ])
            if split_mode is not None:
                expense.split_mode = split_mode
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error replacing splits for expense {expense_id}: {e}", exc_info=True)
            raise RepositoryError(f"Could not replace splits: {e}") from e
