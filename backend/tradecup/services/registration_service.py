"""
Cup Registration Service

Creates a participant entry and captures its starting balance. A failed
balance fetch stores None instead of blocking the registration.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.models.cup import Cup, CupStatus
from tradecup.models.participant import CupParticipant
from tradecup.services.api_key_service import ApiKeyService
from tradecup.services.encryption_service import DecryptionError
from tradecup.services.lbank.errors import LBankAPIError

REGISTRATION_OPEN = (CupStatus.SCHEDULED.value, CupStatus.ACTIVE.value)


class RegistrationError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RegistrationService:
    def __init__(self, api_keys: ApiKeyService):
        self.api_keys = api_keys

    async def register(self, db: AsyncSession, cup_id: str, user_id: str) -> CupParticipant:
        """
        Register ``user_id`` in ``cup_id``.

        Raises:
            RegistrationError: 404 unknown cup, 400 closed cup, duplicate
                entry or no verified credential
        """
        cup = await db.get(Cup, cup_id)
        if cup is None:
            raise RegistrationError("Cup not found", status_code=404)

        if cup.status not in REGISTRATION_OPEN:
            raise RegistrationError("Cup is not accepting registrations")

        existing = await db.execute(
            select(CupParticipant.id).where(
                and_(CupParticipant.cup_id == cup_id, CupParticipant.user_id == user_id)
            )
        )
        if existing.first() is not None:
            raise RegistrationError("Already registered")

        credential = await self.api_keys.get_verified(db, user_id)
        if credential is None:
            raise RegistrationError("Verified LBank API key required")

        start_balance = await self._capture_start_balance(
            user_id,
            credential.encrypted_api_key,
            credential.encrypted_api_secret,
        )

        participant = CupParticipant(
            cup_id=cup_id,
            user_id=user_id,
            start_balance_usdt=start_balance,
        )
        db.add(participant)
        await db.commit()
        await db.refresh(participant)

        logger.info(f"User {user_id} registered in cup {cup_id} (start_balance={start_balance})")
        return participant

    async def _capture_start_balance(
        self,
        user_id: str,
        encrypted_key: str,
        encrypted_secret: str
    ) -> Optional[float]:
        try:
            api_key = self.api_keys.vault.decrypt(encrypted_key)
            api_secret = self.api_keys.vault.decrypt(encrypted_secret)
            return await self.api_keys.exchange.get_usdt_balance(api_key, api_secret)
        except (DecryptionError, LBankAPIError) as e:
            logger.warning(f"Could not fetch balance during registration for {user_id}: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error fetching balance during registration for {user_id}: {e}")
            return None
