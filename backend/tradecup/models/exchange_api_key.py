"""
Encrypted exchange credentials, one row per (user, exchange).
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, UniqueConstraint

from tradecup.db.base_class import Base
from tradecup.models.cup import new_id, utcnow


class ExchangeApiKey(Base):
    __tablename__ = "exchange_api_keys"
    __table_args__ = (
        UniqueConstraint("user_id", "exchange", name="uq_exchange_api_keys_user_exchange"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    exchange = Column(String(32), nullable=False, default="lbank")

    # base64(nonce | tag | ciphertext), see CredentialVault
    encrypted_api_key = Column(Text, nullable=False)
    encrypted_api_secret = Column(Text, nullable=False)

    # Set only after a live user_info.do probe succeeded
    is_verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
