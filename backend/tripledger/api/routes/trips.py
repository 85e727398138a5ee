"""
Trip management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from tripledger.core.config import settings
from tripledger.core.exceptions import HierarchyError, NotFoundError
from tripledger.db.session import get_db
from tripledger.models.trip import Trip
from tripledger.schemas.trip import TripCreate, TripResponse, TripDetailResponse
from tripledger.schemas.participant import ParticipantCreate, ParticipantResponse
from tripledger.services.expense_service import get_trip
from tripledger.services.participant_service import add_participant

router = APIRouter(prefix="/trips", tags=["trips"])


def check_trip_exists(trip_id: str, db: Session) -> Trip:
    """Fetch trip or raise 404."""
    try:
        return get_trip(trip_id, db)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    db: Session = Depends(get_db)
):
    """Create a new trip."""
    currency = trip_data.currency or settings.DEFAULT_CURRENCY

    new_trip = Trip(
        name=trip_data.name,
        start_date=trip_data.start_date,
        end_date=trip_data.end_date,
        currency=currency.upper()
    )
    db.add(new_trip)
    db.commit()
    db.refresh(new_trip)

    return new_trip


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip_detail(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """Get trip details with its participants."""
    trip = check_trip_exists(trip_id, db)
    return TripDetailResponse(
        id=trip.id,
        name=trip.name,
        start_date=trip.start_date,
        end_date=trip.end_date,
        currency=trip.currency,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
        participants=[ParticipantResponse.model_validate(p) for p in trip.participants]
    )


@router.post("/{trip_id}/participants", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def create_participant(
    trip_id: str,
    participant_data: ParticipantCreate,
    db: Session = Depends(get_db)
):
    """Add a participant to the trip."""
    check_trip_exists(trip_id, db)
    try:
        participant = add_participant(trip_id, participant_data, db)
    except HierarchyError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return participant
