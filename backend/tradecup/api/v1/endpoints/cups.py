from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.api.deps import get_cup_service, get_current_user_id, get_db, get_registration_service
from tradecup.services.cup_service import CupNotFoundError, CupService
from tradecup.services.registration_service import RegistrationError, RegistrationService

router = APIRouter()


def _cup_payload(cup, participant_count: int) -> dict:
    return {
        "id": cup.id,
        "name": cup.name,
        "exchange": cup.exchange,
        "pair": cup.pair,
        "status": cup.status,
        "start_at": cup.start_at.isoformat() if cup.start_at else None,
        "end_at": cup.end_at.isoformat() if cup.end_at else None,
        "min_volume_usdt": cup.min_volume_usdt,
        "description": cup.description,
        "participant_count": participant_count,
    }


@router.get("/{cup_id}")
async def get_cup(
    cup_id: str,
    db: AsyncSession = Depends(get_db),
    cups: CupService = Depends(get_cup_service),
):
    try:
        cup = await cups.get_cup(db, cup_id)
    except CupNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cup not found")

    count = await cups.count_participants(db, cup_id)
    return {"data": _cup_payload(cup, count)}


@router.get("/{cup_id}/ranking")
async def get_ranking(
    cup_id: str,
    db: AsyncSession = Depends(get_db),
    cups: CupService = Depends(get_cup_service),
):
    """Current standings, rank ascending with unranked entries last."""
    return {"data": await cups.get_ranking(db, cup_id)}


@router.post("/{cup_id}/register", status_code=status.HTTP_201_CREATED)
async def register(
    cup_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    registration: RegistrationService = Depends(get_registration_service),
):
    try:
        participant = await registration.register(db, cup_id, user_id)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {
        "data": {
            "id": participant.id,
            "cup_id": participant.cup_id,
            "user_id": participant.user_id,
            "start_balance_usdt": participant.start_balance_usdt,
            "registered_at": participant.registered_at.isoformat(),
        }
    }
