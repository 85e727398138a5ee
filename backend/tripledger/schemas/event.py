"""
Pydantic schema for change events emitted after mutations.
"""
from pydantic import BaseModel
from typing import Literal

ChangeType = Literal["participants-changed", "expenses-changed"]


class ChangeEvent(BaseModel):
    """Tells consumers which trip data must be re-fetched."""
    type: ChangeType
    trip_id: str
