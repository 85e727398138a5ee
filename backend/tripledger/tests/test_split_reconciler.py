"""
Tests for the split reconciler.

Storage goes through an in-memory repository so failures can be injected.
"""
import pytest
from decimal import Decimal
from typing import Dict, List, Mapping, Optional
from tripledger.core.exceptions import RepositoryError, ReconciliationFatal
from tripledger.models.expense import SplitMode
from tripledger.schemas.expense import ExpenseRead, SplitRead
from tripledger.schemas.participant import ParticipantRead
from tripledger.services.hierarchy import ParticipantHierarchy
from tripledger.services.repository import ExpenseSplitRepository
from tripledger.services.split_allocator import allocate_split
from tripledger.services.split_reconciler import (
    SplitReconciler,
    detect_by_unit_matching,
    detect_strict,
)


class InMemoryExpenseRepository(ExpenseSplitRepository):
    """Repository fake that records writes and can fail on demand."""

    def __init__(self, expenses: List[ExpenseRead], failing_ids=(), fail_listing=False):
        self.expenses: Dict[str, ExpenseRead] = {e.id: e for e in expenses}
        self.failing_ids = set(failing_ids)
        self.fail_listing = fail_listing
        self.replaced: List[str] = []

    def list_expenses_with_splits(self, trip_id: str) -> List[ExpenseRead]:
        if self.fail_listing:
            raise RepositoryError("connection lost")
        return [e for e in self.expenses.values() if e.trip_id == trip_id]

    def replace_splits(
        self,
        expense_id: str,
        new_splits: Mapping[str, Decimal],
        split_mode: Optional[SplitMode] = None
    ) -> None:
        if expense_id in self.failing_ids:
            raise RepositoryError("insert rejected")
        expense = self.expenses[expense_id]
        update = {"splits": [SplitRead(participant_id=pid, amount=amt) for pid, amt in new_splits.items()]}
        if split_mode is not None:
            update["split_mode"] = split_mode
        self.expenses[expense_id] = expense.model_copy(update=update)
        self.replaced.append(expense_id)

    def splits_of(self, expense_id: str) -> Dict[str, Decimal]:
        return {s.participant_id: s.amount for s in self.expenses[expense_id].splits}


def member(pid, parent_id=None):
    return ParticipantRead(id=pid, name=pid.upper(), parent_id=parent_id)


def expense(eid, amount, splits, payer_id="a", split_mode=None):
    return ExpenseRead(
        id=eid,
        trip_id="trip",
        title=eid,
        amount=Decimal(str(amount)),
        payer_id=payer_id,
        split_mode=split_mode,
        splits=[SplitRead(participant_id=pid, amount=Decimal(str(amt))) for pid, amt in splits.items()]
    )


def equal_expense(eid, amount, participants, payer_id="a"):
    """Expense whose splits come straight from equal-mode allocation."""
    splits = allocate_split(amount, payer_id, participants, SplitMode.EQUAL)
    return expense(eid, amount, splits, payer_id=payer_id)


@pytest.fixture
def roster():
    """A and B independent, C a dependent of A."""
    return [member("a"), member("b"), member("c", parent_id="a")]


def test_unchanged_hierarchy_is_a_no_op(roster):
    """An equal split re-detected under the same hierarchy is rewritten identically."""
    original = equal_expense("e1", 100, roster)
    repository = InMemoryExpenseRepository([original])

    result = SplitReconciler(repository).reconcile("trip", roster, roster)

    assert result.updated_count == 1
    assert result.skipped_count == 0
    assert repository.splits_of("e1") == {s.participant_id: s.amount for s in original.splits}


def test_reparenting_moves_dependent_share(roster):
    """C moving from A to B shifts one head's share from A to B."""
    stored = equal_expense("e1", 90, roster)
    assert {s.participant_id: s.amount for s in stored.splits} == {"a": Decimal("60"), "b": Decimal("30")}
    repository = InMemoryExpenseRepository([stored])

    result = SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", "b")

    assert result.updated_count == 1
    assert repository.splits_of("e1") == {"a": Decimal("30"), "b": Decimal("60")}
    assert repository.expenses["e1"].split_mode == SplitMode.EQUAL


def test_becoming_independent_gives_own_split(roster):
    repository = InMemoryExpenseRepository([equal_expense("e1", 90, roster)])

    SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", None)

    assert repository.splits_of("e1") == {"a": Decimal("30"), "b": Decimal("30"), "c": Decimal("30")}


def test_manual_split_is_left_untouched(roster):
    manual = expense("e1", 100, {"a": 70, "b": 30})
    repository = InMemoryExpenseRepository([manual])

    result = SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", "b")

    assert result.updated_count == 0
    assert result.skipped_count == 1
    assert repository.replaced == []
    assert repository.splits_of("e1") == {"a": Decimal("70"), "b": Decimal("30")}


def test_exact_tag_is_never_reinterpreted(roster):
    """A tagged exact expense is skipped even when its amounts look equal."""
    tagged = expense("e1", 90, {"a": 60, "b": 30}, split_mode=SplitMode.EXACT)
    repository = InMemoryExpenseRepository([tagged])

    result = SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", "b")

    assert result.skipped_count == 1
    assert repository.replaced == []


def test_partial_household_found_by_unit_matching():
    """A split over A, one of A's two dependents and B is recovered as three heads."""
    participants = [member("a"), member("b"), member("c", parent_id="a"), member("d", parent_id="a")]
    stored = expense("e1", 90, {"a": 60, "b": 30})
    hierarchy = ParticipantHierarchy(participants)

    assert detect_strict(stored, hierarchy) is None
    assert detect_by_unit_matching(stored, hierarchy) == ["a", "c", "b"]

    repository = InMemoryExpenseRepository([stored])
    SplitReconciler(repository).reconcile_parent_change("trip", participants, "c", "b")

    assert repository.splits_of("e1") == {"a": Decimal("30"), "b": Decimal("60")}


def test_broken_links_matched_as_split_across_everyone(roster):
    """Amounts that divide into exactly roster-size units count as an everyone split."""
    stale = expense("e1", 90, {"a": 30, "b": 60})
    hierarchy = ParticipantHierarchy(roster)

    assert detect_strict(stale, hierarchy) is None
    assert detect_by_unit_matching(stale, hierarchy) == ["a", "b", "c"]

    repository = InMemoryExpenseRepository([stale])
    SplitReconciler(repository).reconcile("trip", roster, roster)

    assert repository.splits_of("e1") == {"a": Decimal("60"), "b": Decimal("30")}


def test_large_roster_equal_split_is_recognized():
    """Twelve heads with eleven leftover cents still read as an equal split."""
    participants = [member(f"p{i:02d}") for i in range(12)]
    repository = InMemoryExpenseRepository([equal_expense("e1", "12.11", participants, payer_id="p00")])

    result = SplitReconciler(repository).reconcile_parent_change("trip", participants, "p11", "p00")

    assert result.updated_count == 1
    splits = repository.splits_of("e1")
    assert splits["p00"] == Decimal("2.01")
    assert "p11" not in splits
    assert sum(splits.values()) == Decimal("12.11")


def test_rerun_after_change_is_idempotent(roster):
    repository = InMemoryExpenseRepository([equal_expense("e1", 100, roster)])
    reconciler = SplitReconciler(repository)
    reconciler.reconcile_parent_change("trip", roster, "c", "b")
    moved = ParticipantHierarchy(roster).with_parent("c", "b").participants
    first = repository.splits_of("e1")

    result = reconciler.reconcile("trip", moved, moved)

    assert result.updated_count == 1
    assert repository.splits_of("e1") == first


def test_failed_replacement_does_not_stop_batch(roster):
    expenses = [equal_expense("e1", 90, roster), equal_expense("e2", 30, roster), equal_expense("e3", 60, roster)]
    repository = InMemoryExpenseRepository(expenses, failing_ids={"e2"})

    result = SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", "b")

    assert result.updated_count == 2
    assert result.skipped_count == 1
    assert [f.expense_id for f in result.failures] == ["e2"]
    assert repository.splits_of("e2") == {"a": Decimal("20"), "b": Decimal("10")}
    assert repository.splits_of("e3") == {"a": Decimal("20"), "b": Decimal("40")}


def test_fetch_failure_is_fatal(roster):
    repository = InMemoryExpenseRepository([equal_expense("e1", 90, roster)], fail_listing=True)

    with pytest.raises(ReconciliationFatal) as exc_info:
        SplitReconciler(repository).reconcile_parent_change("trip", roster, "c", "b")

    assert exc_info.value.trip_id == "trip"
    assert isinstance(exc_info.value.__cause__, RepositoryError)
    assert repository.replaced == []


def test_expense_without_splits_is_skipped(roster):
    repository = InMemoryExpenseRepository([expense("e1", 50, {})])

    result = SplitReconciler(repository).reconcile("trip", roster, roster)

    assert result.skipped_count == 1
    assert result.summary == "no expenses needed recalculation"


def test_no_expenses(roster):
    result = SplitReconciler(InMemoryExpenseRepository([])).reconcile("trip", roster, roster)
    assert result.updated_count == 0
    assert result.skipped_count == 0
