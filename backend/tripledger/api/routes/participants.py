"""
Participant management routes.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from tripledger.core.exceptions import NotFoundError, ReconciliationFatal
from tripledger.core.utils import format_response
from tripledger.db.session import get_db
from tripledger.schemas.participant import ParticipantResponse, ParticipantUpdate
from tripledger.services.participant_service import remove_participant, update_participant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/participants", tags=["participants"])


@router.patch("/{participant_id}")
async def edit_participant(
    participant_id: str,
    update: ParticipantUpdate,
    db: Session = Depends(get_db)
):
    """
    Rename, change role or re-parent a participant.

    With recalculate_expenses, equal-split expenses follow the new parent;
    the response carries the reconciliation counts.
    """
    try:
        participant, result = update_participant(participant_id, update, db)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        # ValidationError / HierarchyError
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ReconciliationFatal as e:
        logger.error(f"Participant {participant_id} updated without expense adjustment: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Participant was updated but expenses were not recalculated: {e}"
        )

    data = {"participant": ParticipantResponse.model_validate(participant).model_dump(mode="json")}
    message = "Member updated successfully"
    if result is not None:
        data["reconciliation"] = result.model_dump(mode="json")
        message = result.summary
    return format_response(data, message=message)


@router.delete("/{participant_id}")
async def delete_participant(
    participant_id: str,
    db: Session = Depends(get_db)
):
    """Remove a participant whose balance is settled."""
    try:
        trip_id = remove_participant(participant_id, db)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return format_response({"trip_id": trip_id}, message="Participant removed")
