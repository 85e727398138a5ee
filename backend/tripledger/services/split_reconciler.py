"""
Split reconciler: re-applies equal splits after a participant changes parent.

Expenses entered before split modes were tagged carry no record of how
they were divided, so equal-split intent is inferred from the stored
amounts:

A. Strict reconstruction: every split participant takes 1 + dependents
   units under the old hierarchy and each split matches its unit share.
B. Unit matching: look for a total unit count k such that every split is
   an integer number of amount/k shares, then check those units either
   cover the whole roster or fit each participant's household.

Anything that matches neither is a custom split and is left alone. The
tolerances are tight on purpose: missing an equal split only leaves a
stale split, rewriting a manual one corrupts it.
"""
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from tripledger.core.config import settings
from tripledger.core.exceptions import RepositoryError, ReconciliationFatal
from tripledger.models.expense import SplitMode
from tripledger.schemas.expense import ExpenseRead, SplitRead
from tripledger.schemas.participant import ParticipantRead
from tripledger.schemas.reconciliation import ReconciliationPartialFailure, ReconciliationResult
from tripledger.services.hierarchy import ParticipantHierarchy
from tripledger.services.repository import ExpenseSplitRepository
from tripledger.services.split_allocator import consolidate_equal_shares

logger = logging.getLogger(__name__)


def _strict_units(splits: Sequence[SplitRead], hierarchy: ParticipantHierarchy) -> Tuple[Dict[str, int], int]:
    unit_counts = {split.participant_id: hierarchy.unit_count_of(split.participant_id) for split in splits}
    total_units = sum(unit_counts[split.participant_id] for split in splits)
    return unit_counts, total_units


def detect_strict(
    expense: ExpenseRead,
    hierarchy: ParticipantHierarchy,
    tolerance: Optional[Decimal] = None
) -> Optional[List[str]]:
    """
    Strategy A. Returns the people involved, or None when the splits are
    not a per-household equal split under this hierarchy.
    """
    if tolerance is None:
        tolerance = settings.STRICT_MATCH_TOLERANCE
    if not expense.splits:
        return None

    unit_counts, total_units = _strict_units(expense.splits, hierarchy)
    unit_share = expense.amount / total_units
    for split in expense.splits:
        theoretical = unit_share * unit_counts[split.participant_id]
        if abs(split.amount - theoretical) >= tolerance:
            return None

    people: List[str] = []
    for split in expense.splits:
        people.append(split.participant_id)
        people.extend(d.id for d in hierarchy.dependents_of(split.participant_id))
    return people


def _fit_units(splits: Sequence[SplitRead], share: Decimal, tolerance: Decimal) -> Optional[Dict[str, int]]:
    """Units per split participant if every split is a whole number of shares."""
    split_units: Dict[str, int] = {}
    for split in splits:
        units_raw = split.amount / share
        units = int(units_raw.to_integral_value(rounding=ROUND_HALF_UP))
        if units < 1 or abs(units_raw - units) > tolerance:
            return None
        split_units[split.participant_id] = units
    return split_units


def _people_within_capacity(
    splits: Sequence[SplitRead],
    split_units: Dict[str, int],
    hierarchy: ParticipantHierarchy
) -> Optional[List[str]]:
    """Each participant plus units - 1 of their dependents, or None if a household is too small."""
    people: List[str] = []
    for split in splits:
        units = split_units[split.participant_id]
        dependents = hierarchy.dependents_of(split.participant_id)
        if units > 1 + len(dependents):
            return None
        people.append(split.participant_id)
        people.extend(d.id for d in dependents[:units - 1])
    return people


def detect_by_unit_matching(
    expense: ExpenseRead,
    hierarchy: ParticipantHierarchy,
    tolerance: Optional[Decimal] = None,
    search_margin: Optional[int] = None
) -> Optional[List[str]]:
    """
    Strategy B. Tries the strict unit total first, then every k from the
    number of splits up to the roster size plus search_margin.
    """
    if tolerance is None:
        tolerance = settings.UNIT_MATCH_TOLERANCE
    if search_margin is None:
        search_margin = settings.UNIT_SEARCH_MARGIN
    if not expense.splits:
        return None

    participant_count = len(hierarchy)
    _, strict_total = _strict_units(expense.splits, hierarchy)
    candidates = [strict_total] + [
        k for k in range(len(expense.splits), participant_count + search_margin + 1)
        if k != strict_total
    ]

    for k in candidates:
        if k <= 0:
            continue
        split_units = _fit_units(expense.splits, expense.amount / k, tolerance)
        if split_units is None:
            continue

        # k == roster size: an equal split over everyone, even if dependency
        # links were broken since
        if k == participant_count:
            return [p.id for p in hierarchy.participants]

        people = _people_within_capacity(expense.splits, split_units, hierarchy)
        if people is not None:
            logger.debug(f"Expense {expense.id}: hierarchy match with k={k}")
            return people
    return None


def infer_people_involved(expense: ExpenseRead, hierarchy: ParticipantHierarchy) -> Optional[List[str]]:
    """People an untagged expense was equally split between, or None for a custom split."""
    if expense.amount <= 0 or not expense.splits:
        return None
    people = detect_strict(expense, hierarchy)
    if people is not None:
        return people
    return detect_by_unit_matching(expense, hierarchy)


class SplitIntentDetector(ABC):
    """Decides whether an expense is an equal split and who shares it."""

    @abstractmethod
    def people_involved(self, expense: ExpenseRead, hierarchy: ParticipantHierarchy) -> Optional[List[str]]:
        """Participant ids sharing the expense equally, or None to leave it untouched."""


class HeuristicIntentDetector(SplitIntentDetector):
    """Infers intent from split amounts alone."""

    def people_involved(self, expense: ExpenseRead, hierarchy: ParticipantHierarchy) -> Optional[List[str]]:
        return infer_people_involved(expense, hierarchy)


class TaggedIntentDetector(SplitIntentDetector):
    """
    Trusts the persisted split mode where there is one.

    Exact expenses are never touched. Equal and untagged expenses go
    through inference to recover who was involved.
    """

    def __init__(self, fallback: Optional[SplitIntentDetector] = None):
        self.fallback = fallback or HeuristicIntentDetector()

    def people_involved(self, expense: ExpenseRead, hierarchy: ParticipantHierarchy) -> Optional[List[str]]:
        if expense.split_mode == SplitMode.EXACT:
            return None
        people = self.fallback.people_involved(expense, hierarchy)
        if people is None and expense.split_mode == SplitMode.EQUAL:
            logger.warning(f"Expense {expense.id} is tagged equal but its splits do not match the roster")
        return people


class SplitReconciler:
    """Recomputes a trip's equal-split expenses for a new hierarchy."""

    def __init__(self, repository: ExpenseSplitRepository, detector: Optional[SplitIntentDetector] = None):
        self.repository = repository
        self.detector = detector or TaggedIntentDetector()

    def recalculate(
        self,
        expense: ExpenseRead,
        old_hierarchy: ParticipantHierarchy,
        new_hierarchy: ParticipantHierarchy
    ) -> Optional[Dict[str, Decimal]]:
        """New consolidated splits for one expense, or None if it must be skipped."""
        if not expense.splits:
            return None
        people = self.detector.people_involved(expense, old_hierarchy)
        if people is None:
            logger.info(f"Skipping expense {expense.id} - custom split detected")
            return None
        new_splits = consolidate_equal_shares(expense.amount, people, new_hierarchy)
        return new_splits or None

    def reconcile(
        self,
        trip_id: str,
        old_participants: Iterable[ParticipantRead],
        new_participants: Iterable[ParticipantRead]
    ) -> ReconciliationResult:
        """
        Rewrite the splits of every equal-split expense of the trip.

        Raises ReconciliationFatal if the expenses cannot be fetched; in that
        case nothing has been changed. A failure while rewriting one expense
        is recorded in the result and the batch continues.
        """
        old_hierarchy = ParticipantHierarchy(old_participants)
        new_hierarchy = ParticipantHierarchy(new_participants)

        try:
            expenses = self.repository.list_expenses_with_splits(trip_id)
        except RepositoryError as e:
            logger.error(f"Error fetching expenses for trip {trip_id}: {e}")
            raise ReconciliationFatal(trip_id, str(e)) from e

        result = ReconciliationResult(trip_id=trip_id)
        if not expenses:
            logger.info(f"No expenses found for trip {trip_id}")
            return result

        logger.info(f"Processing {len(expenses)} expenses for recalculation")
        for expense in expenses:
            new_splits = self.recalculate(expense, old_hierarchy, new_hierarchy)
            if new_splits is None:
                result.skipped_count += 1
                continue
            try:
                self.repository.replace_splits(expense.id, new_splits, split_mode=SplitMode.EQUAL)
            except RepositoryError as e:
                logger.error(f"Error replacing splits for expense {expense.id}: {e}")
                result.failures.append(ReconciliationPartialFailure(expense_id=expense.id, message=str(e)))
                result.skipped_count += 1
                continue
            result.updated_count += 1

        logger.info(f"Trip {trip_id}: {result.summary}")
        return result

    def reconcile_parent_change(
        self,
        trip_id: str,
        participants: Iterable[ParticipantRead],
        participant_id: str,
        new_parent_id: Optional[str]
    ) -> ReconciliationResult:
        """Reconcile for a single participant moving to new_parent_id (None = independent)."""
        old_hierarchy = ParticipantHierarchy(participants)
        new_hierarchy = old_hierarchy.with_parent(participant_id, new_parent_id)
        return self.reconcile(trip_id, old_hierarchy.participants, new_hierarchy.participants)
