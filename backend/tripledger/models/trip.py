"""
Trip and participant models for group travel expense sharing.
"""
from sqlalchemy import Column, String, Date, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel
import enum


class ParticipantRole(str, enum.Enum):
    """Participant role enumeration."""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class Trip(BaseModel):
    """Trip model representing a shared travel ledger."""
    __tablename__ = "trips"

    name = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    # Relationships
    participants = relationship(
        "Participant",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="Participant.created_at"
    )
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete-orphan")


class Participant(BaseModel):
    """
    A member of a trip.

    A participant with a parent_id is a dependent whose expense shares are
    consolidated into the parent.
    """
    __tablename__ = "participants"

    trip_id = Column(String(36), ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=True, index=True)  # Owning account, if any
    name = Column(String(100), nullable=True)
    email = Column(String(100), nullable=True)
    role = Column(SQLEnum(ParticipantRole), default=ParticipantRole.VIEWER, nullable=False)
    parent_id = Column(String(36), ForeignKey("participants.id"), nullable=True, index=True)

    # Relationships
    trip = relationship("Trip", back_populates="participants")
