from typing import Optional

from pydantic import BaseModel

from tradecup.models.cup import CupStatus
from tradecup.models.participant import DisqualifyReason


class CredentialsIn(BaseModel):
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


class CupStatusUpdate(BaseModel):
    status: CupStatus


class DisqualifyIn(BaseModel):
    participant_id: str
    reason: Optional[DisqualifyReason] = None
