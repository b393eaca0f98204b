"""
LBank API Client Package

Read-only, signed access to LBank account balances and trade history.
"""

from tradecup.services.lbank.client import (
    LBankClient,
    get_lbank_client,
    pair_to_symbol,
    sum_trade_volume,
)
from tradecup.services.lbank.models import (
    AssetBalance,
    LBankFailure,
    LBankResult,
    LBankSuccess,
    Trade,
    UserInfo,
    parse_envelope,
)
from tradecup.services.lbank.errors import (
    ErrorCategory,
    ExchangeError,
    LBankAPIError,
    LBankHTTPError,
    LBankNetworkError,
    LBankResponseError,
)
from tradecup.services.lbank.signing import build_signature, sign_request

__all__ = [
    # Client
    'LBankClient',
    'get_lbank_client',
    'pair_to_symbol',
    'sum_trade_volume',

    # Signing
    'build_signature',
    'sign_request',

    # Models
    'AssetBalance',
    'LBankFailure',
    'LBankResult',
    'LBankSuccess',
    'Trade',
    'UserInfo',
    'parse_envelope',

    # Errors
    'ErrorCategory',
    'ExchangeError',
    'LBankAPIError',
    'LBankHTTPError',
    'LBankNetworkError',
    'LBankResponseError',
]
