"""
Ranking Engine

One full recomputation cycle over every active cup:
- auto-end cups past their end time
- fetch balance and volume for each participant with a verified key
- append a snapshot, overwrite cached stats
- re-rank the participants updated this cycle

Participants are processed concurrently (bounded) inside a cup and the
rank pass waits for all of them. Failures stay scoped to one participant;
the next scheduled cycle is the retry.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from loguru import logger

from tradecup.models.cup import CupStatus
from tradecup.schemas.ranking import (
    CupCycleSummary,
    CupRecord,
    CycleResult,
    OutcomeKind,
    ParticipantOutcome,
    ParticipantRecord,
    SnapshotCreate,
)
from tradecup.services.encryption_service import DecryptionError
from tradecup.services.lbank.client import pair_to_symbol
from tradecup.services.ranking.pnl import DEFAULT_MIN_VOLUME_USDT, assign_ranks, calculate_stats
from tradecup.services.ranking.repository import RankingRepository


class Decrypter(Protocol):
    def decrypt(self, token: str) -> str:
        ...


class BalanceSource(Protocol):
    async def get_usdt_balance(self, api_key: str, secret_key: str) -> float:
        ...

    async def get_volume_for_pair(
        self,
        api_key: str,
        secret_key: str,
        start_timestamp: int,
        symbol: Optional[str] = None,
    ) -> float:
        ...


@dataclass(frozen=True)
class RankingConfig:
    """Knobs for one engine instance"""
    max_concurrency: int = 5
    default_min_volume_usdt: float = DEFAULT_MIN_VOLUME_USDT

    @classmethod
    def from_settings(cls, settings) -> "RankingConfig":
        return cls(
            max_concurrency=settings.RANKING_MAX_CONCURRENCY,
            default_min_volume_usdt=settings.DEFAULT_MIN_VOLUME_USDT,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RankingEngine:
    """
    Orchestrates ranking cycles.

    Example:
        ```python
        engine = RankingEngine(repository, vault, lbank_client)
        result = await engine.run_cycle()
        logger.info(result.to_dict())
        ```
    """

    def __init__(
        self,
        repository: RankingRepository,
        vault: Decrypter,
        exchange: BalanceSource,
        config: Optional[RankingConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.vault = vault
        self.exchange = exchange
        self.config = config or RankingConfig()
        self.clock = clock

    async def run_cycle(self) -> CycleResult:
        """
        Run one cycle over all active cups.

        Raises:
            Exception: Only if the active-cup listing itself fails
        """
        cups = await self.repository.find_active_cups()
        logger.info(f"Ranking cycle started for {len(cups)} active cups")

        result = CycleResult()
        for cup in cups:
            result.results.append(await self.process_cup(cup))

        logger.info(f"Ranking cycle finished: {result.to_dict()['results']}")
        return result

    async def process_cup(self, cup: CupRecord) -> CupCycleSummary:
        """Process one cup; never raises."""
        now = self.clock()

        if cup.has_ended(now):
            try:
                await self.repository.update_cup_status(cup.id, CupStatus.ENDED)
            except Exception as e:
                logger.error(f"Failed to end cup {cup.id}: {e}")
                return CupCycleSummary(cup_id=cup.id, action="error", error=str(e))

            logger.info(f"Cup {cup.id} passed end_at {cup.end_at.isoformat()}, marked ended")
            return CupCycleSummary(cup_id=cup.id, action="ended")

        try:
            participants = await self.repository.find_cup_participants(cup.id)
        except Exception as e:
            logger.error(f"Failed to load participants for cup {cup.id}: {e}")
            return CupCycleSummary(cup_id=cup.id, action="error", error=str(e))

        outcomes = await self._process_participants(cup, participants)

        updated = [o for o in outcomes if o.kind == OutcomeKind.UPDATED]
        ranks = assign_ranks(updated)
        applied = await self._apply_ranks(cup, ranks)

        summary = CupCycleSummary(
            cup_id=cup.id,
            updated=len(updated),
            skipped=sum(1 for o in outcomes if o.kind == OutcomeKind.SKIPPED),
            failed=sum(1 for o in outcomes if o.kind == OutcomeKind.FAILED),
            ranks=applied,
        )

        logger.info(
            f"Cup {cup.id}: updated {summary.updated}/{len(participants)} "
            f"(skipped={summary.skipped}, failed={summary.failed})"
        )
        return summary

    async def _process_participants(
        self,
        cup: CupRecord,
        participants: List[ParticipantRecord],
    ) -> List[ParticipantOutcome]:
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))

        async def bounded(participant: ParticipantRecord) -> ParticipantOutcome:
            async with semaphore:
                return await self.process_participant(cup, participant)

        # Barrier: ranks are assigned only after every participant finished
        return list(await asyncio.gather(*(bounded(p) for p in participants)))

    async def process_participant(
        self,
        cup: CupRecord,
        participant: ParticipantRecord,
    ) -> ParticipantOutcome:
        """Fetch, compute, snapshot and store one participant; never raises."""
        try:
            api_key = self.vault.decrypt(participant.encrypted_api_key)
            secret_key = self.vault.decrypt(participant.encrypted_api_secret)
        except DecryptionError as e:
            logger.error(
                f"Skipping participant {participant.user_id} in cup {cup.id}: "
                f"credential decryption failed ({e})"
            )
            return ParticipantOutcome.skipped(participant, str(e))

        try:
            balance = await self.exchange.get_usdt_balance(api_key, secret_key)
            volume = await self.exchange.get_volume_for_pair(
                api_key,
                secret_key,
                cup.start_timestamp_ms(),
                symbol=pair_to_symbol(cup.pair),
            )

            stats = calculate_stats(
                current_balance=balance,
                start_balance=participant.start_balance_usdt,
                volume_since_start=volume,
                min_volume_usdt=cup.min_volume_usdt,
                default_min_volume_usdt=self.config.default_min_volume_usdt,
            )

            await self.repository.insert_snapshot(
                SnapshotCreate(
                    cup_id=cup.id,
                    user_id=participant.user_id,
                    balance_usdt=balance,
                    volume_since_start=volume,
                    pnl_pct=stats.pnl_pct,
                    snapshot_at=self.clock(),
                )
            )
            await self.repository.update_participant_stats(participant.id, stats)

        except Exception as e:
            logger.error(f"Error processing participant {participant.user_id} in cup {cup.id}: {e}")
            return ParticipantOutcome.failed(participant, str(e))

        logger.debug(
            f"Participant {participant.user_id} in cup {cup.id}: "
            f"balance={balance:.2f} volume={volume:.2f} pnl_pct={stats.pnl_pct:.2f}"
        )
        return ParticipantOutcome.updated(participant, stats, balance)

    async def _apply_ranks(self, cup: CupRecord, ranks: dict) -> dict:
        applied = {}
        for user_id, rank in ranks.items():
            try:
                await self.repository.update_participant_rank(cup.id, user_id, rank)
            except Exception as e:
                logger.error(f"Failed to store rank {rank} for {user_id} in cup {cup.id}: {e}")
                continue
            applied[user_id] = rank
        return applied


def get_ranking_engine(exchange: BalanceSource, session_factory=None) -> RankingEngine:
    """Wire an engine from application settings."""
    from tradecup.core.config import settings
    from tradecup.db.session import get_session_factory
    from tradecup.services.encryption_service import get_credential_vault
    from tradecup.services.ranking.repository import SQLAlchemyRankingRepository

    return RankingEngine(
        repository=SQLAlchemyRankingRepository(session_factory or get_session_factory()),
        vault=get_credential_vault(),
        exchange=exchange,
        config=RankingConfig.from_settings(settings),
    )
