"""
Pydantic schemas for Participant entity.
"""
from pydantic import BaseModel, ConfigDict, computed_field
from typing import Optional
from datetime import datetime
from tripledger.models.trip import ParticipantRole


class ParticipantBase(BaseModel):
    """Base participant schema."""
    name: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[str] = None
    role: ParticipantRole = ParticipantRole.VIEWER
    parent_id: Optional[str] = None


class ParticipantCreate(ParticipantBase):
    """Schema for adding a participant to a trip."""
    pass


class ParticipantUpdate(BaseModel):
    """
    Schema for participant update.

    parent_id is applied only when explicitly present in the request body,
    so null means "make independent". recalculate_expenses asks for
    previously equal-split expenses to follow the new hierarchy. Changing
    the role of a dependent is rejected.
    """
    name: Optional[str] = None
    role: Optional[ParticipantRole] = None
    parent_id: Optional[str] = None
    recalculate_expenses: bool = False


class ParticipantRead(ParticipantBase):
    """In-memory snapshot of a participant, used by the ledger engine."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: Optional[str] = None

    @computed_field
    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown"


class ParticipantResponse(ParticipantRead):
    """Schema for participant response."""
    created_at: datetime
    updated_at: datetime
