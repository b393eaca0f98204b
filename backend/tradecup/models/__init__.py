from tradecup.models.cup import Cup, CupStatus
from tradecup.models.participant import CupParticipant, DisqualificationLog, DisqualifyReason
from tradecup.models.snapshot import CupSnapshot
from tradecup.models.exchange_api_key import ExchangeApiKey

__all__ = [
    "Cup",
    "CupStatus",
    "CupParticipant",
    "DisqualificationLog",
    "DisqualifyReason",
    "CupSnapshot",
    "ExchangeApiKey",
]
