"""
Participant service: roster changes and the expense recalculation they trigger.
"""
import logging
from sqlalchemy.orm import Session
from typing import Optional, Tuple
from tripledger.core.config import settings
from tripledger.core.exceptions import HierarchyError, NotFoundError, ValidationError
from tripledger.models.trip import Participant
from tripledger.schemas.participant import ParticipantCreate, ParticipantUpdate
from tripledger.schemas.reconciliation import ReconciliationResult
from tripledger.services.events import emit
from tripledger.services.expense_service import get_trip, load_expenses, load_participants
from tripledger.services.hierarchy import ParticipantHierarchy
from tripledger.services.ledger_service import compute_balances
from tripledger.services.repository import SqlAlchemyExpenseRepository
from tripledger.services.split_reconciler import SplitReconciler

logger = logging.getLogger(__name__)


def get_participant(participant_id: str, db: Session) -> Participant:
    """Fetch a participant or raise NotFoundError."""
    participant = db.query(Participant).filter(Participant.id == participant_id).first()
    if not participant:
        raise NotFoundError("Participant not found")
    return participant


def add_participant(trip_id: str, data: ParticipantCreate, db: Session) -> Participant:
    """Add a participant, optionally as a dependent of an independent member."""
    get_trip(trip_id, db)
    if data.parent_id is not None:
        ParticipantHierarchy(load_participants(trip_id, db)).check_parent_candidate(data.parent_id)

    participant = Participant(
        trip_id=trip_id,
        user_id=data.user_id,
        name=data.name.strip() if data.name else None,
        email=data.email,
        role=data.role,
        parent_id=data.parent_id
    )
    db.add(participant)
    db.commit()
    db.refresh(participant)

    emit("participants-changed", trip_id)
    return participant


def update_participant(
    participant_id: str,
    data: ParticipantUpdate,
    db: Session
) -> Tuple[Participant, Optional[ReconciliationResult]]:
    """
    Rename, change role or re-parent a participant.

    When the parent changes and recalculate_expenses is set, equal-split
    expenses are recomputed for the new hierarchy. The participant change is
    committed first, so a ReconciliationFatal raised afterwards means the
    hierarchy changed without expense adjustment.
    """
    participant = get_participant(participant_id, db)
    trip_id = participant.trip_id
    old_participants = load_participants(trip_id, db)

    parent_changed = "parent_id" in data.model_fields_set and data.parent_id != participant.parent_id
    if parent_changed:
        ParticipantHierarchy(old_participants).validate_parent(participant_id, data.parent_id)

    if data.name is not None and not data.name.strip():
        raise ValidationError("name cannot be empty")
    new_parent_id = data.parent_id if parent_changed else participant.parent_id
    role_changed = data.role is not None and data.role != participant.role
    # Dependents have no role of their own
    if role_changed and new_parent_id is not None:
        raise ValidationError("cannot change the role of a dependent participant")

    if data.name is not None:
        participant.name = data.name.strip()
    if parent_changed:
        participant.parent_id = data.parent_id
    if role_changed:
        participant.role = data.role

    db.commit()
    db.refresh(participant)
    emit("participants-changed", trip_id)

    result = None
    if parent_changed and data.recalculate_expenses:
        reconciler = SplitReconciler(SqlAlchemyExpenseRepository(db))
        result = reconciler.reconcile(trip_id, old_participants, load_participants(trip_id, db))
        if result.updated_count:
            emit("expenses-changed", trip_id)
        db.refresh(participant)

    return participant, result


def remove_participant(participant_id: str, db: Session) -> str:
    """
    Remove a participant whose balance is settled. Returns the trip id.

    Raises HierarchyError if others still depend on the participant and
    ValidationError if their balance is not zero.
    """
    participant = get_participant(participant_id, db)
    trip_id = participant.trip_id
    participants = load_participants(trip_id, db)

    if ParticipantHierarchy(participants).dependents_of(participant_id):
        raise HierarchyError("Remove or re-link this participant's dependents first")

    balance = compute_balances(participants, load_expenses(trip_id, db)).get(participant_id)
    if balance is not None and abs(balance) > settings.BALANCE_TOLERANCE:
        name = participant.name or "member"
        raise ValidationError(
            f"Cannot remove {name}. Balance is not zero ({balance:+.2f}). Please settle first."
        )

    db.delete(participant)
    db.commit()
    logger.info(f"Removed participant {participant_id} from trip {trip_id}")

    emit("participants-changed", trip_id)
    return trip_id
