"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from tripledger.core.exceptions import NotFoundError, ValidationError
from tripledger.core.utils import format_response
from tripledger.db.session import get_db
from tripledger.schemas.expense import ExpenseCreate, ExpenseRead, ExpenseResponse, ExpenseUpdate
from tripledger.services.expense_service import create_expense, delete_expense, load_expenses, update_expense
from tripledger.api.routes.trips import check_trip_exists

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("/trip/{trip_id}", response_model=List[ExpenseRead])
async def list_expenses(
    trip_id: str,
    db: Session = Depends(get_db)
):
    """List a trip's expenses with their splits, oldest first."""
    check_trip_exists(trip_id, db)
    return load_expenses(trip_id, db)


@router.post("/trip/{trip_id}", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def add_expense(
    trip_id: str,
    expense_data: ExpenseCreate,
    db: Session = Depends(get_db)
):
    """Create a new expense with an equal or exact split."""
    check_trip_exists(trip_id, db)
    try:
        expense = create_expense(trip_id, expense_data, db)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return expense


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def edit_expense(
    expense_id: str,
    expense_data: ExpenseUpdate,
    db: Session = Depends(get_db)
):
    """Update an expense; its splits are recomputed."""
    try:
        expense = update_expense(expense_id, expense_data, db)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return expense


@router.delete("/{expense_id}")
async def remove_expense(
    expense_id: str,
    db: Session = Depends(get_db)
):
    """Delete an expense."""
    try:
        trip_id = delete_expense(expense_id, db)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return format_response({"trip_id": trip_id}, message="Expense deleted")
