"""
Settlement routes: balances, settlement plan and recorded settlements.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from tripledger.core.exceptions import ValidationError
from tripledger.db.session import get_db
from tripledger.schemas.expense import ExpenseResponse
from tripledger.schemas.settlement import (
    BalanceEntry, DaySettlementState, SettlementPlan, SettlementRecord, TripSummary
)
from tripledger.services.settlement_service import (
    calculate_daily_states, calculate_settlement, calculate_trip_summary, record_settlement
)
from tripledger.api.routes.trips import check_trip_exists

router = APIRouter(prefix="/settlement", tags=["settlement"])


@router.get("/{trip_id}/balances", response_model=List[BalanceEntry])
async def get_balances(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """Net balance per participant."""
    check_trip_exists(trip_id, db)
    return calculate_settlement(trip_id, db).balances


@router.get("/{trip_id}/plan", response_model=SettlementPlan)
async def get_settlement_plan(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """Balances with the transfers that settle them."""
    check_trip_exists(trip_id, db)
    return calculate_settlement(trip_id, db)


@router.get("/{trip_id}/daily", response_model=List[DaySettlementState])
async def get_daily_states(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """Settlement state as of each expense date."""
    check_trip_exists(trip_id, db)
    return calculate_daily_states(trip_id, db)


@router.get("/{trip_id}/summary", response_model=TripSummary)
async def get_trip_summary(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """Trip totals excluding settlements."""
    check_trip_exists(trip_id, db)
    return calculate_trip_summary(trip_id, db)


@router.post("/{trip_id}/record", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def record_transfer(
    trip_id: str,
    record: SettlementRecord,
    db: Session = Depends(get_db)
):
    """Record an executed settlement transfer."""
    check_trip_exists(trip_id, db)
    try:
        expense = record_settlement(trip_id, record, db)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return expense
