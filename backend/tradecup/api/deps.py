import hmac
from typing import AsyncGenerator, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from loguru import logger

from tradecup.core.config import settings
from tradecup.db.session import get_db, get_session_factory
from tradecup.services.api_key_service import ApiKeyService
from tradecup.services.cup_service import CupService
from tradecup.services.encryption_service import CredentialVault, EncryptionError, get_credential_vault
from tradecup.services.lbank.client import LBankClient, get_lbank_client
from tradecup.services.ranking.engine import RankingConfig, RankingEngine
from tradecup.services.ranking.repository import RankingRepository, SQLAlchemyRankingRepository
from tradecup.services.registration_service import RegistrationService

SESSION_COOKIE = "wallet_session"

__all__ = [
    "get_db",
    "verify_cron_secret",
    "require_admin",
    "get_current_user_id",
    "get_lbank",
    "get_vault",
    "get_api_key_service",
    "get_registration_service",
    "get_cup_service",
    "get_ranking_repository",
    "get_ranking_engine",
]


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def _matches(supplied: Optional[str], expected: Optional[str]) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Scheduler authentication: ``Authorization: Bearer <CRON_SECRET>``"""
    if not _matches(_bearer_token(authorization), settings.CRON_SECRET):
        logger.warning("Rejected ranking trigger: bad or missing cron secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def require_admin(authorization: Optional[str] = Header(None)) -> None:
    if not _matches(_bearer_token(authorization), settings.ADMIN_API_TOKEN):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def get_current_user_id(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> str:
    """
    Resolve the participant from the wallet session JWT.

    The token is issued by the wallet sign-in flow; here it is only verified.
    """
    token = request.cookies.get(SESSION_COOKIE) or _bearer_token(authorization)
    if not token or not settings.SESSION_JWT_SECRET:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = jwt.decode(
            token,
            settings.SESSION_JWT_SECRET,
            algorithms=[settings.SESSION_JWT_ALGORITHM],
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Session invalid - please sign in again ({e})",
        )

    profile_id = payload.get("profile_id")
    if not profile_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return str(profile_id)


async def get_lbank() -> AsyncGenerator[LBankClient, None]:
    client = get_lbank_client()
    try:
        yield client
    finally:
        await client.close()


def get_vault() -> CredentialVault:
    try:
        return get_credential_vault()
    except EncryptionError as e:
        logger.error(f"Credential vault unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Encryption not configured")


def get_api_key_service(
    vault: CredentialVault = Depends(get_vault),
    lbank: LBankClient = Depends(get_lbank),
) -> ApiKeyService:
    return ApiKeyService(vault=vault, exchange=lbank, exchange_name=settings.DEFAULT_EXCHANGE)


def get_registration_service(
    api_keys: ApiKeyService = Depends(get_api_key_service),
) -> RegistrationService:
    return RegistrationService(api_keys)


def get_cup_service() -> CupService:
    return CupService()


def get_ranking_repository() -> RankingRepository:
    return SQLAlchemyRankingRepository(get_session_factory())


def get_ranking_engine(
    _: None = Depends(verify_cron_secret),
    repository: RankingRepository = Depends(get_ranking_repository),
    vault: CredentialVault = Depends(get_vault),
    lbank: LBankClient = Depends(get_lbank),
) -> RankingEngine:
    """Engine for the HTTP trigger; authentication resolves first."""
    return RankingEngine(
        repository=repository,
        vault=vault,
        exchange=lbank,
        config=RankingConfig.from_settings(settings),
    )
