"""
LBank request signing.

sign = hex(HMAC-SHA256(secret, UPPER(hex(MD5(sorted "k=v&k=v")))))
"""

import hashlib
import hmac
import secrets
import string
import time
from typing import Callable, Dict, Mapping, Optional, Tuple

SIGNATURE_METHOD = "HmacSHA256"

ECHOSTR_ALPHABET = string.ascii_lowercase + string.digits
ECHOSTR_LENGTH = 35  # exchange accepts 30-40


def generate_echostr(length: int = ECHOSTR_LENGTH) -> str:
    if not 30 <= length <= 40:
        raise ValueError("echostr must be 30-40 characters")
    return "".join(secrets.choice(ECHOSTR_ALPHABET) for _ in range(length))


def current_millis() -> int:
    return int(time.time() * 1000)


def build_signature(params: Mapping[str, str], secret_key: str) -> str:
    """Sign an already-complete parameter set (without ``sign``)."""
    payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
    digest = hashlib.md5(payload.encode("utf-8")).hexdigest().upper()
    return hmac.new(
        secret_key.encode("utf-8"),
        digest.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def sign_request(
    params: Mapping[str, object],
    api_key: str,
    secret_key: str,
    timestamp: Optional[int] = None,
    echostr: Optional[str] = None,
) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Build the form body and headers for one signed LBank POST.

    Args:
        params: Endpoint-specific parameters
        api_key: Account API key
        secret_key: Account secret, used as the HMAC key
        timestamp: Milliseconds since epoch (defaults to now)
        echostr: Random echo string (defaults to a fresh one)

    Returns:
        Tuple of (form body including ``sign``, request headers)
    """
    timestamp_str = str(timestamp if timestamp is not None else current_millis())
    echo = echostr if echostr is not None else generate_echostr()

    body: Dict[str, str] = {
        "api_key": api_key,
        "signature_method": SIGNATURE_METHOD,
        "timestamp": timestamp_str,
        "echostr": echo,
    }
    for key, value in params.items():
        body[key] = str(value)

    body["sign"] = build_signature(body, secret_key)

    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "echostr": echo,
        "timestamp": timestamp_str,
        "signature_method": SIGNATURE_METHOD,
    }
    return body, headers


Clock = Callable[[], int]
EchostrFactory = Callable[[], str]
