"""
Unit Tests for LBank request signing
"""

import hashlib
import hmac

import pytest

from tradecup.services.lbank.signing import (
    ECHOSTR_ALPHABET,
    SIGNATURE_METHOD,
    build_signature,
    generate_echostr,
    sign_request,
)

FIXED_ECHOSTR = "abcdefghijklmnopqrstuvwxyz012345678"
FIXED_TIMESTAMP = 1718000000000


class TestBuildSignature:

    def test_known_answer(self):
        params = {
            "api_key": "key",
            "echostr": FIXED_ECHOSTR,
            "signature_method": SIGNATURE_METHOD,
            "timestamp": str(FIXED_TIMESTAMP),
        }

        assert build_signature(params, "secret") == (
            "96d2c17c30e18fca5f95a3e688e2d1d5638744f8a575ae1aa1974affe813b999"
        )

    def test_key_order_does_not_matter(self):
        forward = {"a": "1", "b": "2", "c": "3"}
        backward = {"c": "3", "b": "2", "a": "1"}

        assert build_signature(forward, "s") == build_signature(backward, "s")

    def test_signature_is_lowercase_hex_sha256(self):
        signature = build_signature({"x": "1"}, "secret")

        assert len(signature) == 64
        assert all(c in "0123456789abcdef" for c in signature)

    def test_secret_changes_signature(self):
        params = {"x": "1"}
        assert build_signature(params, "one") != build_signature(params, "two")

    def test_sort_is_by_codepoint(self):
        # Uppercase sorts before lowercase, underscore between them
        params = {"b": "1", "B": "2", "_": "3"}
        payload = "B=2&_=3&b=1"
        digest = hashlib.md5(payload.encode()).hexdigest().upper()
        expected = hmac.new(b"k", digest.encode(), hashlib.sha256).hexdigest()

        assert build_signature(params, "k") == expected


class TestSignRequest:

    def test_known_answer_for_trade_history_request(self):
        """Vector computed independently with Node's crypto module"""
        body, _ = sign_request(
            {
                "symbol": "izky_usdt",
                "current_page": 1,
                "page_length": 100,
                "start_date": 1717200000000,
            },
            "c1b2a3d4-e5f6-4789-a0b1-c2d3e4f5a6b7",
            "9F86D081884C7D659A2FEAA0C55AD015",
            timestamp=FIXED_TIMESTAMP,
            echostr=FIXED_ECHOSTR,
        )

        assert body["sign"] == "e5118ed0538f29d67f9e54d486f129d972f3e6385a8918154e7d8eba772714e9"

    def test_deterministic_with_fixed_echostr_and_timestamp(self):
        first = sign_request({"symbol": "izky_usdt"}, "key", "secret",
                             timestamp=FIXED_TIMESTAMP, echostr=FIXED_ECHOSTR)
        second = sign_request({"symbol": "izky_usdt"}, "key", "secret",
                              timestamp=FIXED_TIMESTAMP, echostr=FIXED_ECHOSTR)

        assert first == second

    def test_body_contains_fixed_fields_and_sign(self):
        body, _ = sign_request({"current_page": 1}, "key", "secret",
                               timestamp=FIXED_TIMESTAMP, echostr=FIXED_ECHOSTR)

        assert body["api_key"] == "key"
        assert body["signature_method"] == "HmacSHA256"
        assert body["timestamp"] == str(FIXED_TIMESTAMP)
        assert body["echostr"] == FIXED_ECHOSTR
        assert body["current_page"] == "1"

        unsigned = {k: v for k, v in body.items() if k != "sign"}
        assert body["sign"] == build_signature(unsigned, "secret")

    def test_headers_duplicate_echostr_timestamp_and_method(self):
        _, headers = sign_request({}, "key", "secret",
                                  timestamp=FIXED_TIMESTAMP, echostr=FIXED_ECHOSTR)

        assert headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert headers["echostr"] == FIXED_ECHOSTR
        assert headers["timestamp"] == str(FIXED_TIMESTAMP)
        assert headers["signature_method"] == "HmacSHA256"

    def test_secret_is_not_transmitted(self):
        body, headers = sign_request({}, "key", "topsecret",
                                     timestamp=FIXED_TIMESTAMP, echostr=FIXED_ECHOSTR)

        assert "topsecret" not in body.values()
        assert "topsecret" not in headers.values()

    def test_defaults_generate_timestamp_and_echostr(self):
        body, headers = sign_request({}, "key", "secret")

        assert body["timestamp"].isdigit()
        assert 30 <= len(body["echostr"]) <= 40
        assert headers["echostr"] == body["echostr"]


class TestEchostr:

    def test_length_and_alphabet(self):
        echostr = generate_echostr()

        assert 30 <= len(echostr) <= 40
        assert set(echostr) <= set(ECHOSTR_ALPHABET)

    @pytest.mark.parametrize("length", [29, 41])
    def test_rejects_out_of_range_length(self, length):
        with pytest.raises(ValueError):
            generate_echostr(length)
