"""
LBank API Client - Response Models

Pydantic models for the envelope and the payloads we read.
"""

from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class LBankSuccess(BaseModel):
    """Envelope with an affirmative ``result``"""
    data: Any = None


class LBankFailure(BaseModel):
    """Envelope whose ``result`` is anything but true"""
    error_code: Optional[int] = None
    message: Optional[str] = None


LBankResult = Union[LBankSuccess, LBankFailure]

_TRUE_RESULTS = (True, "true", "True")


def parse_envelope(payload: Dict[str, Any]) -> LBankResult:
    """
    Classify a decoded LBank response body.

    ``result`` arrives as a string or a boolean depending on the endpoint.
    """
    if payload.get("result") in _TRUE_RESULTS:
        return LBankSuccess(data=payload.get("data"))

    code = payload.get("error_code")
    try:
        code = int(code) if code is not None else None
    except (TypeError, ValueError):
        code = None

    return LBankFailure(error_code=code, message=payload.get("msg"))


class AssetBalance(BaseModel):
    """One asset row of the account balance"""
    asset: str
    available: str = "0"
    frozen: str = "0"


class Trade(BaseModel):
    """Executed trade as returned by transaction_history.do"""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    order_id: Optional[str] = Field(None, alias="orderId")
    symbol: Optional[str] = None
    side: Optional[str] = None
    price: Optional[str] = None
    volume: Optional[str] = None
    deal_volume: Optional[str] = Field(None, alias="dealVolume")
    deal_price: Optional[str] = Field(None, alias="dealPrice")
    transact_time: Optional[str] = Field(None, alias="transactTime")


class UserInfo(BaseModel):
    """Minimal identity returned by user_info.do"""
    uid: str
