from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.api.deps import get_cup_service, get_db, require_admin
from tradecup.models.participant import DisqualifyReason
from tradecup.schemas.api import CupStatusUpdate, DisqualifyIn
from tradecup.services.cup_service import (
    AlreadyDisqualifiedError,
    CupNotFoundError,
    CupService,
    InvalidStatusTransition,
    ParticipantNotFoundError,
)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.patch("/cups/{cup_id}/status")
async def update_cup_status(
    cup_id: str,
    body: CupStatusUpdate,
    db: AsyncSession = Depends(get_db),
    cups: CupService = Depends(get_cup_service),
):
    try:
        cup = await cups.transition(db, cup_id, body.status)
    except CupNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cup not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"data": {"id": cup.id, "status": cup.status}}


@router.post("/cups/{cup_id}/disqualify")
async def disqualify_participant(
    cup_id: str,
    body: DisqualifyIn,
    db: AsyncSession = Depends(get_db),
    cups: CupService = Depends(get_cup_service),
):
    try:
        await cups.disqualify(
            db,
            cup_id,
            body.participant_id,
            reason=body.reason or DisqualifyReason.ADMIN_FORCED,
        )
    except ParticipantNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")
    except AlreadyDisqualifiedError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already disqualified")

    return {"success": True}
