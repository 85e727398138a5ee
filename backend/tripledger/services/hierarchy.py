"""
Participant hierarchy lookups over an in-memory trip roster.

Dependents are single level: a dependent's parent must be independent.
Rosters that still contain chains (legacy rows) are flattened to the
nearest independent ancestor when shares are consolidated.
"""
import logging
from typing import Dict, Iterable, List, Optional
from tripledger.core.exceptions import HierarchyError
from tripledger.schemas.participant import ParticipantRead

logger = logging.getLogger(__name__)


class ParticipantHierarchy:
    """Read-only view of a trip's participants and their parent links."""

    def __init__(self, participants: Iterable[ParticipantRead]):
        self._participants: List[ParticipantRead] = list(participants)
        self._by_id: Dict[str, ParticipantRead] = {p.id: p for p in self._participants}
        self._order: Dict[str, int] = {p.id: i for i, p in enumerate(self._participants)}

    @property
    def participants(self) -> List[ParticipantRead]:
        return list(self._participants)

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self._by_id

    def get(self, participant_id: str) -> Optional[ParticipantRead]:
        return self._by_id.get(participant_id)

    def position_of(self, participant_id: str) -> int:
        """Roster index, unknown ids sort last."""
        return self._order.get(participant_id, len(self._participants))

    def dependents_of(self, participant_id: str) -> List[ParticipantRead]:
        """All participants whose parent_id equals the given id, in roster order."""
        return [p for p in self._participants if p.parent_id == participant_id]

    @staticmethod
    def is_independent(participant: ParticipantRead) -> bool:
        return participant.parent_id is None

    def independents(self) -> List[ParticipantRead]:
        return [p for p in self._participants if self.is_independent(p)]

    def unit_count_of(self, participant_id: str) -> int:
        """Household size: the participant plus its direct dependents."""
        return 1 + len(self.dependents_of(participant_id))

    def consolidation_target(self, participant_id: str) -> str:
        """
        Id of the independent participant who carries this participant's share.

        Walks up parent links so a dependent-of-a-dependent lands on the
        nearest independent ancestor. A missing parent or a cycle leaves the
        share with the participant itself.
        """
        current = self._by_id.get(participant_id)
        if current is None:
            return participant_id

        seen = {current.id}
        while current.parent_id is not None:
            parent = self._by_id.get(current.parent_id)
            if parent is None:
                logger.warning(
                    f"Participant {current.id} references missing parent {current.parent_id}; "
                    f"keeping share on {participant_id}"
                )
                return participant_id
            if parent.id in seen:
                logger.warning(f"Parent cycle detected at participant {participant_id}")
                return participant_id
            if parent.parent_id is not None:
                logger.warning(f"Flattening dependent chain {participant_id} -> {parent.id}")
            seen.add(parent.id)
            current = parent
        return current.id

    def validate_parent(self, participant_id: str, new_parent_id: Optional[str]) -> None:
        """
        Check that participant_id may be linked to new_parent_id.

        Raises HierarchyError when the link would create a chain or point
        outside the trip.
        """
        if participant_id not in self._by_id:
            raise HierarchyError(f"Participant {participant_id} is not part of this trip")
        if new_parent_id is None:
            return
        if new_parent_id == participant_id:
            raise HierarchyError("A participant cannot be their own parent")
        self.check_parent_candidate(new_parent_id)
        if self.dependents_of(participant_id):
            raise HierarchyError("A participant with dependents cannot become a dependent")

    def check_parent_candidate(self, parent_id: str) -> None:
        """Raise HierarchyError unless parent_id is an independent participant of this trip."""
        parent = self._by_id.get(parent_id)
        if parent is None:
            raise HierarchyError(f"Parent {parent_id} is not part of this trip")
        if not self.is_independent(parent):
            raise HierarchyError("A dependent cannot be the parent of another participant")

    def with_parent(self, participant_id: str, new_parent_id: Optional[str]) -> "ParticipantHierarchy":
        """Snapshot of the same roster with one parent link changed."""
        return ParticipantHierarchy(
            p.model_copy(update={"parent_id": new_parent_id}) if p.id == participant_id else p
            for p in self._participants
        )
