"""
Balance ledger: net balance per participant from a trip's expenses.
"""
import logging
from typing import Dict, Iterable, List
from datetime import date
from decimal import Decimal
from tripledger.schemas.expense import ExpenseRead
from tripledger.schemas.participant import ParticipantRead

logger = logging.getLogger(__name__)


def compute_balances(
    participants: Iterable[ParticipantRead],
    expenses: Iterable[ExpenseRead]
) -> Dict[str, Decimal]:
    """
    Calculate net balance for each participant.

    Positive = owed money by the group, negative = owes the group.
    Recorded settlements are ordinary expenses here, which is what zeroes
    the debts they paid off. Payers or splits that reference participants
    outside the roster contribute nothing.
    """
    balances: Dict[str, Decimal] = {p.id: Decimal(0) for p in participants}

    for expense in expenses:
        # Add what payer paid
        if expense.payer_id in balances:
            balances[expense.payer_id] += expense.amount
        else:
            logger.warning(f"Expense {expense.id} paid by unknown participant {expense.payer_id}; ignored")

        # Subtract what each participant owes
        for split in expense.splits:
            if split.participant_id not in balances:
                logger.warning(
                    f"Expense {expense.id} has a split for unknown participant {split.participant_id}; ignored"
                )
                continue
            balances[split.participant_id] -= split.amount

    return balances


def balances_as_of(
    participants: Iterable[ParticipantRead],
    expenses: Iterable[ExpenseRead],
    as_of: date
) -> Dict[str, Decimal]:
    """Balances using only expenses dated on or before as_of."""
    return compute_balances(
        participants,
        (e for e in expenses if e.date is not None and e.date <= as_of)
    )


def expense_dates(expenses: Iterable[ExpenseRead]) -> List[date]:
    """Distinct expense dates, oldest first."""
    return sorted({e.date for e in expenses if e.date is not None})


def summarize_trip(
    participants: Iterable[ParticipantRead],
    expenses: Iterable[ExpenseRead]
) -> Dict[str, object]:
    """
    Totals for the trip report, leaving recorded settlements out.

    Returns total_cost, paid_by_participant, share_by_participant and
    category_totals (uncategorized expenses are grouped under "Other").
    """
    participant_ids = [p.id for p in participants]
    paid: Dict[str, Decimal] = {pid: Decimal(0) for pid in participant_ids}
    share: Dict[str, Decimal] = {pid: Decimal(0) for pid in participant_ids}
    categories: Dict[str, Decimal] = {}
    total = Decimal(0)

    for expense in expenses:
        if expense.is_settlement:
            continue
        total += expense.amount
        paid[expense.payer_id] = paid.get(expense.payer_id, Decimal(0)) + expense.amount
        for split in expense.splits:
            share[split.participant_id] = share.get(split.participant_id, Decimal(0)) + split.amount
        category = expense.category or "Other"
        categories[category] = categories.get(category, Decimal(0)) + expense.amount

    return {
        "total_cost": total,
        "paid_by_participant": paid,
        "share_by_participant": share,
        "category_totals": categories,
    }
