"""
LBank API Client

Read-only wrapper for LBank's signed v2 REST endpoints.

Features:
- MD5 + HmacSHA256 request signing
- Typed response envelope (success / failure)
- Account balance, trade history and identity probe
- Derived USDT balance and traded volume helpers

No retries are performed here: a failed call raises LBankAPIError and the
next scheduled ranking cycle is the retry.
"""

import math
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from tradecup.services.lbank.errors import (
    ErrorCategory,
    LBankAPIError,
    LBankHTTPError,
    LBankNetworkError,
    LBankResponseError,
)
from tradecup.services.lbank.models import (
    AssetBalance,
    LBankFailure,
    Trade,
    UserInfo,
    parse_envelope,
)
from tradecup.services.lbank.signing import (
    Clock,
    EchostrFactory,
    current_millis,
    generate_echostr,
    sign_request,
)


def pair_to_symbol(pair: str) -> str:
    """Convert a cup pair such as ``IZKY/USDT`` to LBank's ``izky_usdt``."""
    return pair.strip().replace("/", "_").replace("-", "_").lower()


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _expect_dict(value: Any, field: str, endpoint: str) -> Dict[str, Any]:
    """A missing object reads as empty; any other non-object is a bad response."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise LBankResponseError(
            None,
            f"Expected an object for {field} from {endpoint}, got {type(value).__name__}",
            category=ErrorCategory.INVALID_RESPONSE,
        )
    return value


class LBankClient:
    """
    Async client for the LBank account API.

    Example:
        ```python
        async with LBankClient() as client:
            balance = await client.get_usdt_balance(api_key, secret_key)
            volume = await client.get_volume_for_pair(
                api_key, secret_key, start_timestamp=1718000000000
            )
        ```
    """

    BASE_URL = "https://api.lbkex.com"

    ACCOUNT_INFO_ENDPOINT = "/v2/supplement/user_info_account.do"
    TRANSACTION_HISTORY_ENDPOINT = "/v2/supplement/transaction_history.do"
    USER_INFO_ENDPOINT = "/v2/supplement/user_info.do"

    DEFAULT_SYMBOL = "izky_usdt"
    QUOTE_ASSET = "usdt"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 15.0,
        default_symbol: str = DEFAULT_SYMBOL,
        page_length: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
        echostr_factory: Optional[EchostrFactory] = None,
    ):
        """
        Initialize LBank API client.

        Args:
            base_url: LBank REST root
            timeout: Per-request timeout in seconds
            default_symbol: Symbol used when a caller does not pass one
            page_length: Trades requested per history call
            transport: Optional httpx transport (tests)
            clock: Millisecond clock used for the signed timestamp
            echostr_factory: Source of the random echo string
        """
        self.base_url = base_url
        self.default_symbol = default_symbol
        self.page_length = page_length
        self._clock = clock or current_millis
        self._echostr_factory = echostr_factory or generate_echostr

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

        logger.debug(f"LBankClient initialized (base_url={base_url})")

    async def __aenter__(self) -> "LBankClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self):
        """Close the underlying HTTP client"""
        await self.client.aclose()

    async def _post(
        self,
        endpoint: str,
        params: Dict[str, Any],
        api_key: str,
        secret_key: str,
    ) -> Any:
        """
        Sign and send one POST, returning the envelope's ``data``.

        Raises:
            LBankNetworkError: Transport failure
            LBankHTTPError: Non-2xx status
            LBankResponseError: Failure envelope or undecodable body
        """
        body, headers = sign_request(
            params,
            api_key,
            secret_key,
            timestamp=self._clock(),
            echostr=self._echostr_factory(),
        )

        try:
            response = await self.client.post(endpoint, data=body, headers=headers)
        except httpx.HTTPError as e:
            raise LBankNetworkError(f"Request to {endpoint} failed: {e}") from e

        if not response.is_success:
            raise LBankHTTPError(response.status_code, response.reason_phrase)

        try:
            payload = response.json()
        except ValueError as e:
            raise LBankResponseError(
                None,
                f"Invalid JSON from {endpoint}",
                category=ErrorCategory.INVALID_RESPONSE,
            ) from e

        if not isinstance(payload, dict):
            raise LBankResponseError(
                None,
                f"Unexpected response shape from {endpoint}",
                category=ErrorCategory.INVALID_RESPONSE,
            )

        result = parse_envelope(payload)
        if isinstance(result, LBankFailure):
            raise LBankResponseError(
                result.error_code,
                result.message,
                response_data=payload,
            )

        return result.data

    # ========================================================================
    # ACCOUNT METHODS
    # ========================================================================

    async def get_account_balance(
        self,
        api_key: str,
        secret_key: str
    ) -> List[AssetBalance]:
        """
        Fetch free and frozen balances, one row per asset.

        Returns:
            List of AssetBalance (amounts kept as exchange strings)
        """
        data = await self._post(self.ACCOUNT_INFO_ENDPOINT, {}, api_key, secret_key)

        endpoint = self.ACCOUNT_INFO_ENDPOINT
        info = _expect_dict(_expect_dict(data, "data", endpoint).get("info"), "info", endpoint)
        free = _expect_dict(info.get("free"), "info.free", endpoint)
        freeze = _expect_dict(info.get("freeze"), "info.freeze", endpoint)

        return [
            AssetBalance(
                asset=asset,
                available=str(free.get(asset) or "0"),
                frozen=str(freeze.get(asset) or "0"),
            )
            for asset in free
        ]

    async def get_usdt_balance(self, api_key: str, secret_key: str) -> float:
        """
        Total USDT (available + frozen). A missing USDT row means zero.
        """
        balances = await self.get_account_balance(api_key, secret_key)

        usdt = next(
            (b for b in balances if b.asset.lower() == self.QUOTE_ASSET),
            None
        )
        if usdt is None:
            return 0.0

        available = _to_float(usdt.available)
        frozen = _to_float(usdt.frozen)
        if available is None or frozen is None:
            raise LBankResponseError(
                None,
                f"Unparseable USDT balance ({usdt.available!r}, {usdt.frozen!r})",
                category=ErrorCategory.INVALID_RESPONSE,
            )

        return available + frozen

    async def get_transaction_history(
        self,
        api_key: str,
        secret_key: str,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Trade]:
        """
        List executed trades for one symbol (first page only).

        Args:
            symbol: LBank symbol, e.g. ``izky_usdt``
            start_time: Lower bound in ms, omitted when falsy
            end_time: Upper bound in ms, omitted when falsy
            limit: Page length
        """
        params: Dict[str, Any] = {
            "symbol": symbol or self.default_symbol,
            "current_page": 1,
            "page_length": limit or self.page_length,
        }
        if start_time:
            params["start_date"] = start_time
        if end_time:
            params["end_date"] = end_time

        data = await self._post(
            self.TRANSACTION_HISTORY_ENDPOINT, params, api_key, secret_key
        )

        orders = _expect_dict(data, "data", self.TRANSACTION_HISTORY_ENDPOINT).get("orders") or []
        if not isinstance(orders, list):
            raise LBankResponseError(
                None,
                f"Expected a list of orders from {self.TRANSACTION_HISTORY_ENDPOINT}",
                category=ErrorCategory.INVALID_RESPONSE,
            )

        trades = []
        for order in orders:
            try:
                trades.append(Trade.model_validate(order))
            except ValidationError as e:
                logger.debug(f"Skipping malformed trade record {order!r}: {e}")
        return trades

    async def get_user_info(self, api_key: str, secret_key: str) -> UserInfo:
        """Identity probe used to prove a key pair is live."""
        data = await self._post(self.USER_INFO_ENDPOINT, {}, api_key, secret_key)

        if not isinstance(data, dict) or data.get("uid") is None:
            raise LBankAPIError(
                "user_info.do returned no uid",
                category=ErrorCategory.INVALID_RESPONSE,
            )

        return UserInfo(uid=str(data["uid"]))

    async def get_volume_for_pair(
        self,
        api_key: str,
        secret_key: str,
        start_timestamp: int,
        symbol: Optional[str] = None,
    ) -> float:
        """
        Quote-currency volume traded since ``start_timestamp`` (ms).

        Sums ``dealVolume * dealPrice``; trades before the start or with
        non-numeric deal fields are ignored.
        """
        trades = await self.get_transaction_history(
            api_key,
            secret_key,
            symbol=symbol,
            start_time=start_timestamp,
        )
        return sum_trade_volume(trades, start_timestamp)


def sum_trade_volume(trades: List[Trade], start_timestamp: int) -> float:
    total = 0.0
    for trade in trades:
        transacted_at = _to_float(trade.transact_time) or 0
        if transacted_at < start_timestamp:
            continue

        deal_volume = _to_float(trade.deal_volume)
        deal_price = _to_float(trade.deal_price)
        if deal_volume is None or deal_price is None:
            continue

        total += deal_volume * deal_price
    return total


def get_lbank_client() -> LBankClient:
    """Build a client from application settings."""
    from tradecup.core.config import settings

    return LBankClient(
        base_url=settings.LBANK_BASE_URL,
        timeout=settings.LBANK_TIMEOUT,
        default_symbol=pair_to_symbol(settings.DEFAULT_PAIR),
        page_length=settings.LBANK_TRADE_PAGE_LENGTH,
    )
