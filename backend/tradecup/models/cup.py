import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime, Text
from sqlalchemy.orm import relationship

from tradecup.db.base_class import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class CupStatus(str, enum.Enum):
    """Cup lifecycle: draft -> scheduled -> active -> ended -> finalized"""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ENDED = "ended"
    FINALIZED = "finalized"


class Cup(Base):
    """A time-boxed trading competition on one exchange pair"""
    __tablename__ = "cups"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    exchange = Column(String(32), nullable=False, default="lbank")
    pair = Column(String(32), nullable=False, default="IZKY/USDT")
    status = Column(String(20), nullable=False, default=CupStatus.DRAFT.value, index=True)

    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)

    # Prize eligibility threshold in quote currency
    min_volume_usdt = Column(Float, nullable=True, default=100.0)

    description = Column(Text, nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    participants = relationship(
        "CupParticipant",
        back_populates="cup",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def __repr__(self):
        return f"<Cup {self.id} {self.status}>"
