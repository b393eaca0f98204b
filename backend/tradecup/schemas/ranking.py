"""
Ranking schemas

Plain records exchanged between the ranking engine and its repository,
and the per-participant / per-cup outcomes of one cycle.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from tradecup.models.cup import CupStatus


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CupRecord(BaseModel):
    id: str
    name: str
    exchange: str = "lbank"
    pair: str = "IZKY/USDT"
    status: CupStatus
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    min_volume_usdt: Optional[float] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)

    def has_ended(self, now: datetime) -> bool:
        return self.end_at is not None and now > self.end_at

    def start_timestamp_ms(self) -> int:
        if self.start_at is None:
            return 0
        return int(self.start_at.timestamp() * 1000)


class ParticipantRecord(BaseModel):
    """Participant joined with its verified credential for the cup's exchange"""
    id: str
    cup_id: str
    user_id: str
    registered_at: Optional[datetime] = None
    start_balance_usdt: Optional[float] = None
    rank: Optional[int] = None
    encrypted_api_key: str
    encrypted_api_secret: str

    @field_validator("registered_at")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)


class SnapshotCreate(BaseModel):
    cup_id: str
    user_id: str
    balance_usdt: float
    volume_since_start: float
    pnl_pct: float
    snapshot_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ParticipantStats(BaseModel):
    pnl: float
    pnl_pct: float
    total_volume_usdt: float
    is_eligible: bool


class OutcomeKind(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ParticipantOutcome(BaseModel):
    """Result of processing one participant in one cycle"""
    kind: OutcomeKind
    participant_id: str
    user_id: str
    registered_at: Optional[datetime] = None
    stats: Optional[ParticipantStats] = None
    balance_usdt: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def updated(
        cls,
        participant: ParticipantRecord,
        stats: ParticipantStats,
        balance_usdt: float,
    ) -> "ParticipantOutcome":
        return cls(
            kind=OutcomeKind.UPDATED,
            participant_id=participant.id,
            user_id=participant.user_id,
            registered_at=participant.registered_at,
            stats=stats,
            balance_usdt=balance_usdt,
        )

    @classmethod
    def skipped(cls, participant: ParticipantRecord, reason: str) -> "ParticipantOutcome":
        return cls(
            kind=OutcomeKind.SKIPPED,
            participant_id=participant.id,
            user_id=participant.user_id,
            error=reason,
        )

    @classmethod
    def failed(cls, participant: ParticipantRecord, reason: str) -> "ParticipantOutcome":
        return cls(
            kind=OutcomeKind.FAILED,
            participant_id=participant.id,
            user_id=participant.user_id,
            error=reason,
        )


class CupCycleSummary(BaseModel):
    """One cup's line in the cycle report"""
    cup_id: str
    action: Optional[Literal["ended", "error"]] = None
    updated: Optional[int] = None
    skipped: int = 0
    failed: int = 0
    ranks: Dict[str, int] = Field(default_factory=dict)
    error: Optional[str] = None

    def to_report(self) -> Dict[str, Any]:
        if self.action == "ended":
            return {"cup_id": self.cup_id, "action": "ended"}
        if self.action == "error":
            return {"cup_id": self.cup_id, "action": "error", "error": self.error}
        return {"cup_id": self.cup_id, "updated": self.updated or 0}


class CycleResult(BaseModel):
    results: List[CupCycleSummary] = Field(default_factory=list)

    @property
    def active_cups(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "results": [summary.to_report() for summary in self.results],
        }

