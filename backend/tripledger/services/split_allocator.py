"""
Split allocator: turns a requested split into per-participant amounts.

Equal mode divides the amount per head across the whole roster
(dependents included) and consolidates each dependent's share into
their parent. Exact mode takes manual amounts as entered.
"""
from typing import Any, Dict, Iterable, Mapping, Optional
from decimal import Decimal
from tripledger.core.config import settings
from tripledger.core.exceptions import ValidationError
from tripledger.core.utils import to_decimal, quantize_cents, split_evenly
from tripledger.models.expense import SplitMode
from tripledger.schemas.participant import ParticipantRead
from tripledger.services.hierarchy import ParticipantHierarchy


def parse_amount(amount: Any) -> Decimal:
    """Validate an expense amount and round it to cents."""
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ValidationError("invalid amount")
    if value <= 0:
        raise ValidationError("invalid amount")
    value = quantize_cents(value)
    if value <= 0:
        raise ValidationError("invalid amount")
    return value


def consolidate_equal_shares(
    amount: Decimal,
    people_ids: Iterable[str],
    hierarchy: ParticipantHierarchy
) -> Dict[str, Decimal]:
    """
    Divide amount evenly per head and credit each head to their consolidation target.

    Heads are taken in roster order so the leftover cents always land on
    the same people. Heads unknown to the hierarchy are dropped before
    dividing. Only targets with a non-zero share are returned.
    """
    heads = sorted(
        {pid for pid in people_ids if pid in hierarchy},
        key=hierarchy.position_of
    )
    consolidated: Dict[str, Decimal] = {}
    for person_id, share in zip(heads, split_evenly(amount, len(heads))):
        target_id = hierarchy.consolidation_target(person_id)
        consolidated[target_id] = consolidated.get(target_id, Decimal(0)) + share

    return {pid: amt for pid, amt in consolidated.items() if amt != 0}


def allocate_equal(amount: Decimal, hierarchy: ParticipantHierarchy) -> Dict[str, Decimal]:
    """Equal split across every participant, consolidated to independents."""
    return consolidate_equal_shares(amount, (p.id for p in hierarchy.participants), hierarchy)


def allocate_exact(
    amount: Decimal,
    manual_splits: Optional[Mapping[str, Any]],
    hierarchy: ParticipantHierarchy,
    tolerance: Optional[Decimal] = None
) -> Dict[str, Decimal]:
    """
    Validate manually entered splits against the expense amount.

    Entries may name dependents directly; no consolidation is applied.
    Each entry is rounded to cents, and a difference within tolerance is
    absorbed by the largest share (first one on ties) so the splits add up
    to amount exactly. Zero entries are dropped.
    """
    if tolerance is None:
        tolerance = settings.EXACT_SPLIT_TOLERANCE
    if not manual_splits:
        raise ValidationError("manual splits required for an exact split")

    splits: Dict[str, Decimal] = {}
    for participant_id, raw_amount in manual_splits.items():
        if participant_id not in hierarchy:
            raise ValidationError(f"unknown participant {participant_id}")
        try:
            value = to_decimal(raw_amount)
        except ValueError:
            raise ValidationError(f"invalid split amount for participant {participant_id}")
        if value < 0:
            raise ValidationError(f"negative split amount for participant {participant_id}")
        splits[participant_id] = quantize_cents(value)

    total = sum(splits.values(), Decimal(0))
    if abs(total - amount) > tolerance:
        raise ValidationError(f"Splits ({total}) do not match total amount ({amount})")

    if total != amount:
        largest_id = max(splits, key=splits.get)
        adjusted = splits[largest_id] + amount - total
        if adjusted < 0:
            raise ValidationError(f"Splits ({total}) do not match total amount ({amount})")
        splits[largest_id] = adjusted

    return {pid: amt for pid, amt in splits.items() if amt != 0}


def allocate_split(
    amount: Any,
    payer_id: Optional[str],
    participants: Iterable[ParticipantRead],
    mode: SplitMode,
    manual_splits: Optional[Mapping[str, Any]] = None
) -> Dict[str, Decimal]:
    """
    Produce the participant -> owed amount mapping for a new or edited expense.

    Raises ValidationError for a bad amount, a missing or dependent payer,
    or manual splits that do not add up.
    """
    value = parse_amount(amount)
    if not payer_id:
        raise ValidationError("payer required")

    hierarchy = ParticipantHierarchy(participants)
    payer = hierarchy.get(payer_id)
    if payer is None:
        raise ValidationError(f"payer {payer_id} is not part of this trip")
    if not hierarchy.is_independent(payer):
        raise ValidationError("payer must be an independent participant")

    if SplitMode(mode) == SplitMode.EQUAL:
        return allocate_equal(value, hierarchy)
    return allocate_exact(value, manual_splits, hierarchy)
