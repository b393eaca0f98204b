"""
Exchange API Key Service

Links a participant's read-only LBank key pair:
- live probe (user_info.do) before anything is stored
- AES-256-GCM encryption of key and secret
- upsert keyed by (user_id, exchange), marked verified
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.models.exchange_api_key import ExchangeApiKey
from tradecup.models.cup import utcnow
from tradecup.services.encryption_service import CredentialVault
from tradecup.services.lbank.client import LBankClient
from tradecup.services.lbank.errors import LBankAPIError


class CredentialVerificationError(Exception):
    """Raised when a key pair is missing or rejected by the exchange"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _clean(api_key: Optional[str], api_secret: Optional[str]) -> Tuple[str, str]:
    api_key = (api_key or "").strip()
    api_secret = (api_secret or "").strip()
    if not api_key or not api_secret:
        raise CredentialVerificationError("API key and secret required")
    return api_key, api_secret


class ApiKeyService:
    """
    Verify, store and look up encrypted exchange credentials.
    """

    def __init__(self, vault: CredentialVault, exchange: LBankClient, exchange_name: str = "lbank"):
        self.vault = vault
        self.exchange = exchange
        self.exchange_name = exchange_name

    async def verify_credentials(self, api_key: str, api_secret: str) -> Dict[str, Any]:
        """
        Probe a key pair without storing it.

        Returns:
            Dict with uid, usdt_balance and connected=True

        Raises:
            CredentialVerificationError: Missing input or exchange rejection
        """
        api_key, api_secret = _clean(api_key, api_secret)

        try:
            user_info = await self.exchange.get_user_info(api_key, api_secret)
            usdt_balance = await self.exchange.get_usdt_balance(api_key, api_secret)
        except LBankAPIError as e:
            raise CredentialVerificationError(f"LBank API error: {e.message}") from e

        return {"uid": user_info.uid, "usdt_balance": usdt_balance, "connected": True}

    async def save_credentials(
        self,
        db: AsyncSession,
        user_id: str,
        api_key: str,
        api_secret: str
    ) -> ExchangeApiKey:
        """
        Verify then upsert the encrypted key pair for ``user_id``.

        Raises:
            CredentialVerificationError: Missing input or invalid credentials
        """
        api_key, api_secret = _clean(api_key, api_secret)

        try:
            await self.exchange.get_user_info(api_key, api_secret)
        except LBankAPIError as e:
            logger.warning(f"Rejected credentials for user {user_id}: {e}")
            raise CredentialVerificationError("Invalid API credentials") from e

        encrypted_key = self.vault.encrypt(api_key)
        encrypted_secret = self.vault.encrypt(api_secret)

        record = await self._find(db, user_id, verified_only=False)
        if record is None:
            record = ExchangeApiKey(user_id=user_id, exchange=self.exchange_name)
            db.add(record)

        record.encrypted_api_key = encrypted_key
        record.encrypted_api_secret = encrypted_secret
        record.is_verified = True
        record.updated_at = utcnow()

        await db.commit()
        await db.refresh(record)

        logger.info(f"Stored verified {self.exchange_name} credentials for user {user_id}")
        return record

    async def credential_status(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        record = await self._find(db, user_id, verified_only=True)
        saved_at: Optional[datetime] = record.created_at if record else None
        return {
            "connected": record is not None,
            "saved_at": saved_at.isoformat() if saved_at else None,
        }

    async def get_verified(self, db: AsyncSession, user_id: str) -> Optional[ExchangeApiKey]:
        return await self._find(db, user_id, verified_only=True)

    async def _find(self, db: AsyncSession, user_id: str, verified_only: bool) -> Optional[ExchangeApiKey]:
        conditions = [
            ExchangeApiKey.user_id == user_id,
            ExchangeApiKey.exchange == self.exchange_name,
        ]
        if verified_only:
            conditions.append(ExchangeApiKey.is_verified.is_(True))

        result = await db.execute(select(ExchangeApiKey).where(and_(*conditions)))
        return result.scalars().first()
