"""
Cup Service

Administrative status changes, disqualification and ranking reads.
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.models.cup import Cup, CupStatus
from tradecup.models.participant import CupParticipant, DisqualificationLog, DisqualifyReason


# Moves allowed through the admin path; active -> ended is also made by the
# ranking cycle on expiry.
ALLOWED_TRANSITIONS = {
    CupStatus.DRAFT: {CupStatus.SCHEDULED, CupStatus.ACTIVE},
    CupStatus.SCHEDULED: {CupStatus.ACTIVE},
    CupStatus.ACTIVE: {CupStatus.ENDED},
    CupStatus.ENDED: {CupStatus.FINALIZED},
    CupStatus.FINALIZED: set(),
}


class CupNotFoundError(Exception):
    pass


class ParticipantNotFoundError(Exception):
    pass


class InvalidStatusTransition(Exception):
    def __init__(self, current: CupStatus, target: CupStatus):
        super().__init__(f"Cannot move cup from {current.value} to {target.value}")
        self.current = current
        self.target = target


class AlreadyDisqualifiedError(Exception):
    pass


class CupService:
    async def get_cup(self, db: AsyncSession, cup_id: str) -> Cup:
        cup = await db.get(Cup, cup_id)
        if cup is None:
            raise CupNotFoundError(cup_id)
        return cup

    async def count_participants(self, db: AsyncSession, cup_id: str) -> int:
        result = await db.execute(
            select(func.count(CupParticipant.id)).where(CupParticipant.cup_id == cup_id)
        )
        return result.scalar_one()

    async def transition(self, db: AsyncSession, cup_id: str, status: CupStatus) -> Cup:
        """
        Move a cup along its lifecycle.

        Raises:
            CupNotFoundError: Unknown cup
            InvalidStatusTransition: Move not allowed from the current state
        """
        cup = await self.get_cup(db, cup_id)
        current = CupStatus(cup.status)
        target = CupStatus(status)

        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(current, target)

        cup.status = target.value
        await db.commit()
        await db.refresh(cup)

        logger.info(f"Cup {cup_id} status {current.value} -> {target.value}")
        return cup

    async def disqualify(
        self,
        db: AsyncSession,
        cup_id: str,
        participant_id: str,
        reason: DisqualifyReason = DisqualifyReason.ADMIN_FORCED,
        admin_user_id: Optional[str] = None,
    ) -> CupParticipant:
        """
        Remove a participant from ranking consideration.

        Raises:
            ParticipantNotFoundError: Unknown participant or wrong cup
            AlreadyDisqualifiedError: Participant already disqualified
        """
        participant = await db.get(CupParticipant, participant_id)
        if participant is None or participant.cup_id != cup_id:
            raise ParticipantNotFoundError(participant_id)

        if participant.is_disqualified:
            raise AlreadyDisqualifiedError(participant_id)

        reason = DisqualifyReason(reason)
        participant.is_disqualified = True
        participant.disqualify_reason = reason.value

        db.add(DisqualificationLog(
            cup_id=cup_id,
            user_id=participant.user_id,
            reason=reason.value,
            admin_user_id=admin_user_id,
        ))
        await db.commit()
        await db.refresh(participant)

        logger.warning(f"Participant {participant.user_id} disqualified from cup {cup_id} ({reason.value})")
        return participant

    async def get_ranking(self, db: AsyncSession, cup_id: str) -> List[Dict[str, Any]]:
        """Non-disqualified participants, rank ascending, unranked last."""
        result = await db.execute(
            select(CupParticipant)
            .where(and_(
                CupParticipant.cup_id == cup_id,
                CupParticipant.is_disqualified.is_(False),
            ))
            .order_by(
                CupParticipant.rank.is_(None),
                CupParticipant.rank,
                CupParticipant.registered_at,
            )
        )
        return [
            {
                "id": p.id,
                "user_id": p.user_id,
                "rank": p.rank,
                "pnl": p.pnl,
                "pnl_pct": p.pnl_pct,
                "total_volume_usdt": p.total_volume_usdt,
                "is_eligible": p.is_eligible,
                "start_balance_usdt": p.start_balance_usdt,
                "registered_at": p.registered_at.isoformat() if p.registered_at else None,
            }
            for p in result.scalars().all()
        ]
