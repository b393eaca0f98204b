# Import all models here for Alembic
from tradecup.db.base_class import Base
from tradecup.models.cup import Cup
from tradecup.models.participant import CupParticipant, DisqualificationLog
from tradecup.models.snapshot import CupSnapshot
from tradecup.models.exchange_api_key import ExchangeApiKey

__all__ = [
    "Base",
    "Cup",
    "CupParticipant",
    "DisqualificationLog",
    "CupSnapshot",
    "ExchangeApiKey",
]
