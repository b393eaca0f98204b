"""
Ranking repository

The narrow persistence interface the ranking engine consumes, and its
SQLAlchemy implementation. Every call is its own short session and commit.
"""

from typing import List, Protocol

from loguru import logger
from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from tradecup.models.cup import Cup, CupStatus
from tradecup.models.exchange_api_key import ExchangeApiKey
from tradecup.models.participant import CupParticipant
from tradecup.models.snapshot import CupSnapshot
from tradecup.schemas.ranking import (
    CupRecord,
    ParticipantRecord,
    ParticipantStats,
    SnapshotCreate,
)


class RankingRepository(Protocol):
    async def find_active_cups(self) -> List[CupRecord]:
        ...

    async def find_cup_participants(
        self,
        cup_id: str,
        exclude_disqualified: bool = True
    ) -> List[ParticipantRecord]:
        ...

    async def update_cup_status(self, cup_id: str, status: CupStatus) -> None:
        ...

    async def insert_snapshot(self, snapshot: SnapshotCreate) -> None:
        ...

    async def update_participant_stats(self, participant_id: str, stats: ParticipantStats) -> None:
        ...

    async def update_participant_rank(self, cup_id: str, user_id: str, rank: int) -> None:
        ...


def cup_to_record(cup: Cup) -> CupRecord:
    return CupRecord(
        id=cup.id,
        name=cup.name,
        exchange=cup.exchange,
        pair=cup.pair,
        status=CupStatus(cup.status),
        start_at=cup.start_at,
        end_at=cup.end_at,
        min_volume_usdt=cup.min_volume_usdt,
    )


class SQLAlchemyRankingRepository:
    """RankingRepository backed by the cups / cup_participants tables"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def find_active_cups(self) -> List[CupRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Cup)
                .where(Cup.status == CupStatus.ACTIVE.value)
                .order_by(Cup.created_at, Cup.id)
            )
            return [cup_to_record(cup) for cup in result.scalars().all()]

    async def find_cup_participants(
        self,
        cup_id: str,
        exclude_disqualified: bool = True
    ) -> List[ParticipantRecord]:
        """
        Participants of a cup that hold a verified credential for the
        cup's exchange. Participants without one are left out.
        """
        conditions = [CupParticipant.cup_id == cup_id]
        if exclude_disqualified:
            conditions.append(CupParticipant.is_disqualified.is_(False))

        query = (
            select(CupParticipant, ExchangeApiKey)
            .join(Cup, Cup.id == CupParticipant.cup_id)
            .join(
                ExchangeApiKey,
                and_(
                    ExchangeApiKey.user_id == CupParticipant.user_id,
                    ExchangeApiKey.exchange == Cup.exchange,
                    ExchangeApiKey.is_verified.is_(True),
                ),
            )
            .where(and_(*conditions))
            .order_by(CupParticipant.registered_at, CupParticipant.id)
        )

        async with self.session_factory() as session:
            result = await session.execute(query)
            return [
                ParticipantRecord(
                    id=participant.id,
                    cup_id=participant.cup_id,
                    user_id=participant.user_id,
                    registered_at=participant.registered_at,
                    start_balance_usdt=participant.start_balance_usdt,
                    rank=participant.rank,
                    encrypted_api_key=credential.encrypted_api_key,
                    encrypted_api_secret=credential.encrypted_api_secret,
                )
                for participant, credential in result.all()
            ]

    async def update_cup_status(self, cup_id: str, status: CupStatus) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(Cup).where(Cup.id == cup_id).values(status=CupStatus(status).value)
            )
            await session.commit()
        logger.info(f"Cup {cup_id} status -> {CupStatus(status).value}")

    async def insert_snapshot(self, snapshot: SnapshotCreate) -> None:
        async with self.session_factory() as session:
            session.add(CupSnapshot(**snapshot.model_dump()))
            await session.commit()

    async def update_participant_stats(self, participant_id: str, stats: ParticipantStats) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(CupParticipant)
                .where(CupParticipant.id == participant_id)
                .values(**stats.model_dump())
            )
            await session.commit()

    async def update_participant_rank(self, cup_id: str, user_id: str, rank: int) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(CupParticipant)
                .where(and_(CupParticipant.cup_id == cup_id, CupParticipant.user_id == user_id))
                .values(rank=rank)
            )
            await session.commit()
