"""
Settlement service: reduces net balances to a short list of transfers.
"""
import logging
from sqlalchemy.orm import Session
from typing import Callable, Dict, Iterable, List, Mapping, Optional
from decimal import Decimal
from tripledger.core.config import settings
from tripledger.core.exceptions import ValidationError
from tripledger.models.expense import Expense, ExpenseSplit, SplitMode, SETTLEMENT_LABEL
from tripledger.schemas.expense import ExpenseRead
from tripledger.schemas.participant import ParticipantRead
from tripledger.schemas.settlement import (
    BalanceEntry, DaySettlementState, Settlement, SettlementPlan, SettlementRecord, TripSummary
)
from tripledger.services.events import emit
from tripledger.services.expense_service import get_trip, load_expenses, load_participants
from tripledger.services.hierarchy import ParticipantHierarchy
from tripledger.services.ledger_service import balances_as_of, compute_balances, expense_dates, summarize_trip
from tripledger.services.split_allocator import allocate_exact, parse_amount

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], str]


def name_resolver(participants: Iterable[ParticipantRead]) -> NameResolver:
    """Map participant ids to display names, "Unknown" for ids outside the roster."""
    names = {p.id: p.display_name for p in participants}
    return lambda participant_id: names.get(participant_id, "Unknown")


def plan_settlements(
    balances: Mapping[str, Decimal],
    resolve_name: NameResolver,
    tolerance: Optional[Decimal] = None
) -> List[Settlement]:
    """
    Minimize the number of transfers needed to settle debts.

    Greedy: the largest debtor pays the largest creditor until one of them
    is within tolerance of zero, then the next one steps in. Sorting is
    stable, so equal balances keep their input order.
    """
    if tolerance is None:
        tolerance = settings.BALANCE_TOLERANCE

    # Separate debtors (negative balance) and creditors (positive balance)
    debtors = [[pid, bal] for pid, bal in balances.items() if bal < -tolerance]
    creditors = [[pid, bal] for pid, bal in balances.items() if bal > tolerance]

    debtors.sort(key=lambda x: x[1])
    creditors.sort(key=lambda x: x[1], reverse=True)

    transfers: List[Settlement] = []
    d = 0
    c = 0

    while d < len(debtors) and c < len(creditors):
        debtor = debtors[d]
        creditor = creditors[c]

        # Transfer the minimum of what's owed and what's needed
        amount = min(abs(debtor[1]), creditor[1])
        transfers.append(Settlement(
            from_participant_id=debtor[0],
            from_name=resolve_name(debtor[0]),
            to_participant_id=creditor[0],
            to_name=resolve_name(creditor[0]),
            amount=amount
        ))

        debtor[1] += amount
        creditor[1] -= amount

        if abs(debtor[1]) <= tolerance:
            d += 1
        if creditor[1] <= tolerance:
            c += 1

    return transfers


def balance_entries(
    balances: Mapping[str, Decimal],
    resolve_name: NameResolver,
    drop_settled: bool = False
) -> List[BalanceEntry]:
    """Balances as display rows, largest credit first."""
    entries = [
        BalanceEntry(participant_id=pid, name=resolve_name(pid), amount=amount)
        for pid, amount in balances.items()
        if not drop_settled or abs(amount) > settings.BALANCE_TOLERANCE
    ]
    entries.sort(key=lambda e: e.amount, reverse=True)
    return entries


def daily_settlement_states(
    participants: List[ParticipantRead],
    expenses: List[ExpenseRead],
    resolve_name: NameResolver
) -> List[DaySettlementState]:
    """Settlement state after each expense date, running the planner on each prefix."""
    states = []
    for day in expense_dates(expenses):
        balances = balances_as_of(participants, expenses, day)
        states.append(DaySettlementState(
            date=day,
            balances=balance_entries(balances, resolve_name, drop_settled=True),
            settlements=plan_settlements(balances, resolve_name)
        ))
    return states


def calculate_settlement(trip_id: str, db: Session) -> SettlementPlan:
    """Current balances and settlement plan for a trip."""
    trip = get_trip(trip_id, db)
    participants = load_participants(trip_id, db)
    expenses = load_expenses(trip_id, db)
    resolve_name = name_resolver(participants)

    balances = compute_balances(participants, expenses)
    transfers = plan_settlements(balances, resolve_name)
    logger.debug(f"Trip {trip_id}: {len(transfers)} transfers settle {len(balances)} balances")

    return SettlementPlan(
        trip_id=trip_id,
        currency=trip.currency,
        balances=balance_entries(balances, resolve_name),
        settlements=transfers
    )


def calculate_daily_states(trip_id: str, db: Session) -> List[DaySettlementState]:
    """Day-by-day settlement states for a trip."""
    get_trip(trip_id, db)
    participants = load_participants(trip_id, db)
    expenses = load_expenses(trip_id, db)
    return daily_settlement_states(participants, expenses, name_resolver(participants))


def calculate_trip_summary(trip_id: str, db: Session) -> TripSummary:
    """Totals per participant and category, excluding settlements."""
    trip = get_trip(trip_id, db)
    summary = summarize_trip(load_participants(trip_id, db), load_expenses(trip_id, db))
    return TripSummary(trip_id=trip_id, currency=trip.currency, **summary)


def record_settlement(trip_id: str, record: SettlementRecord, db: Session) -> Expense:
    """
    Persist an executed transfer as a "Settlement" expense.

    The debtor is the payer and the creditor holds the only split, so the
    ledger nets the paid-off debt to zero.
    """
    get_trip(trip_id, db)
    amount = parse_amount(record.amount)
    hierarchy = ParticipantHierarchy(load_participants(trip_id, db))
    if record.from_participant_id not in hierarchy:
        raise ValidationError(f"participant {record.from_participant_id} is not part of this trip")
    if record.from_participant_id == record.to_participant_id:
        raise ValidationError("a settlement needs two different participants")
    splits: Dict[str, Decimal] = allocate_exact(amount, {record.to_participant_id: amount}, hierarchy)

    expense = Expense(
        trip_id=trip_id,
        payer_id=record.from_participant_id,
        title=SETTLEMENT_LABEL,
        amount=amount,
        category=SETTLEMENT_LABEL,
        date=record.date,
        split_mode=SplitMode.EXACT
    )
    db.add(expense)
    db.flush()
    for participant_id, split_amount in splits.items():
        db.add(ExpenseSplit(expense_id=expense.id, participant_id=participant_id, amount=split_amount))
    db.commit()
    db.refresh(expense)

    logger.info(f"Recorded settlement {record.from_participant_id} -> {record.to_participant_id}: {amount}")
    emit("expenses-changed", trip_id)
    return expense
