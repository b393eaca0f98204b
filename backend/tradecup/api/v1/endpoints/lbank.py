from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.api.deps import get_api_key_service, get_current_user_id, get_db
from tradecup.schemas.api import CredentialsIn
from tradecup.services.api_key_service import ApiKeyService, CredentialVerificationError

router = APIRouter()


@router.post("/test")
async def test_credentials(
    body: CredentialsIn,
    _: str = Depends(get_current_user_id),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    """Probe a key pair without saving it."""
    try:
        data = await api_keys.verify_credentials(body.api_key, body.api_secret)
    except CredentialVerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"data": data}


@router.post("/save-key")
async def save_credentials(
    body: CredentialsIn,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    try:
        record = await api_keys.save_credentials(db, user_id, body.api_key, body.api_secret)
    except CredentialVerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {
        "data": {
            "id": record.id,
            "exchange": record.exchange,
            "is_verified": record.is_verified,
            "created_at": record.created_at.isoformat(),
        }
    }


@router.get("/status")
async def credential_status(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    return await api_keys.credential_status(db, user_id)
