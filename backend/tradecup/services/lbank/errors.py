"""
LBank API Client - Error Classes

Every failure of a read-only LBank call surfaces as an LBankAPIError.
The client never retries; callers log and skip.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors that can occur"""
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    HTTP = "http"
    EXCHANGE = "exchange"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class LBankAPIError(Exception):
    """Base exception for all LBank API errors"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status_code: Optional[int] = None,
        error_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = status_code
        self.error_code = error_code
        self.response_data = response_data or {}

    def __str__(self):
        return f"[{self.category.value}] {self.message}"


# Name used by callers that only care that the exchange failed
ExchangeError = LBankAPIError


class LBankNetworkError(LBankAPIError):
    """Raised when the request never produced an HTTP response"""

    def __init__(self, message: str = "Network request failed", **kwargs):
        super().__init__(message=message, category=ErrorCategory.NETWORK, **kwargs)


class LBankHTTPError(LBankAPIError):
    """Raised on a non-2xx HTTP status"""

    def __init__(self, status_code: int, reason: str = "", **kwargs):
        super().__init__(
            message=f"LBank API error: {status_code} {reason}".rstrip(),
            category=categorize_error(status_code),
            status_code=status_code,
            **kwargs
        )


class LBankResponseError(LBankAPIError):
    """Raised when the envelope reports failure or cannot be parsed"""

    def __init__(
        self,
        error_code: Optional[int],
        message: Optional[str],
        category: ErrorCategory = ErrorCategory.EXCHANGE,
        **kwargs
    ):
        super().__init__(
            message=f"LBank error {error_code}: {message or 'unknown error'}",
            category=category,
            error_code=error_code,
            **kwargs
        )


def categorize_error(status_code: Optional[int]) -> ErrorCategory:
    """
    Categorize error based on HTTP status code.

    Args:
        status_code: HTTP status code

    Returns:
        ErrorCategory enum value
    """
    if status_code in (401, 403):
        return ErrorCategory.AUTHENTICATION

    if status_code == 429:
        return ErrorCategory.RATE_LIMIT

    if status_code and status_code >= 300:
        return ErrorCategory.HTTP

    return ErrorCategory.UNKNOWN
