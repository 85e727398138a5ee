"""
Pydantic schemas for split reconciliation results.
"""
from pydantic import BaseModel
from typing import List


class ReconciliationPartialFailure(BaseModel):
    """One expense whose splits could not be replaced."""
    expense_id: str
    message: str


class ReconciliationResult(BaseModel):
    """Outcome of recalculating a trip's equal-split expenses."""
    trip_id: str
    updated_count: int = 0
    skipped_count: int = 0
    failures: List[ReconciliationPartialFailure] = []

    @property
    def summary(self) -> str:
        if self.updated_count:
            return f"{self.updated_count} expenses updated"
        return "no expenses needed recalculation"
