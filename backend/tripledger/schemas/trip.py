"""
Pydantic schemas for Trip entity.
"""
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime
from tripledger.schemas.participant import ParticipantResponse


class TripBase(BaseModel):
    """Base trip schema."""
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: Optional[str] = None  # Falls back to DEFAULT_CURRENCY


class TripCreate(TripBase):
    """Schema for trip creation."""
    pass


class TripResponse(TripBase):
    """Schema for trip response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    currency: str
    created_at: datetime
    updated_at: datetime


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with participants."""
    participants: List[ParticipantResponse] = []
