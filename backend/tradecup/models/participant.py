import enum

from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from tradecup.db.base_class import Base
from tradecup.models.cup import new_id, utcnow


class DisqualifyReason(str, enum.Enum):
    DEPOSIT_DETECTED = "deposit_detected"
    WITHDRAWAL_DETECTED = "withdrawal_detected"
    ADMIN_FORCED = "admin_forced"


class CupParticipant(Base):
    """
    One user's entry in one cup.

    pnl, pnl_pct, total_volume_usdt, is_eligible and rank are a cached
    projection written by the ranking cycle; the disqualification fields are
    written only by the admin path.
    """
    __tablename__ = "cup_participants"
    __table_args__ = (
        UniqueConstraint("cup_id", "user_id", name="uq_cup_participants_cup_user"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    cup_id = Column(String(36), ForeignKey("cups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    registered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Captured once at registration; None when the exchange was unreachable
    start_balance_usdt = Column(Float, nullable=True)
    end_balance_usdt = Column(Float, nullable=True)

    pnl = Column(Float, nullable=True)
    pnl_pct = Column(Float, nullable=True)
    total_volume_usdt = Column(Float, nullable=False, default=0.0)
    is_eligible = Column(Boolean, nullable=True)

    is_disqualified = Column(Boolean, nullable=False, default=False)
    disqualify_reason = Column(String(32), nullable=True)

    rank = Column(Integer, nullable=True, index=True)

    cup = relationship("Cup", back_populates="participants")

    def __repr__(self):
        return f"<CupParticipant cup={self.cup_id} user={self.user_id} rank={self.rank}>"


class DisqualificationLog(Base):
    __tablename__ = "disqualification_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    cup_id = Column(String(36), ForeignKey("cups.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(String(64), nullable=True)
    reason = Column(String(32), nullable=False)
    detected_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    admin_user_id = Column(String(64), nullable=True)
