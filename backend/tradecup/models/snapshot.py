from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index

from tradecup.db.base_class import Base
from tradecup.models.cup import new_id, utcnow


class CupSnapshot(Base):
    """Append-only observation of a participant; never updated or deleted"""
    __tablename__ = "cup_snapshots"
    __table_args__ = (
        Index("ix_cup_snapshots_cup_user_at", "cup_id", "user_id", "snapshot_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    cup_id = Column(String(36), ForeignKey("cups.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False)
    snapshot_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    balance_usdt = Column(Float, nullable=True)
    volume_since_start = Column(Float, nullable=True)
    pnl_pct = Column(Float, nullable=True)
