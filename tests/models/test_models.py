"""Tests for pydantic models."""

import pytest
from pydantic import ValidationError

from tokenrelay.models import SentTokenRecord, TokenInfo


class TestSentTokenRecord:

    def test_valid_record(self):
        record = SentTokenRecord.model_validate({"hash": "abc", "ts": 1700000000000})
        assert record.model_dump() == {"hash": "abc", "ts": 1700000000000}

    def test_float_ts_truncated(self):
        assert SentTokenRecord.model_validate({"hash": "abc", "ts": 12.9}).ts == 12

    def test_missing_ts_defaults_to_zero(self):
        assert SentTokenRecord.model_validate({"hash": "abc"}).ts == 0

    def test_extra_fields_ignored(self):
        record = SentTokenRecord.model_validate({"hash": "abc", "ts": 1, "extra": True})
        assert record.model_dump() == {"hash": "abc", "ts": 1}

    @pytest.mark.parametrize(
        "data",
        [
            {"ts": 1},
            {"hash": "", "ts": 1},
            {"hash": "abc", "ts": "1"},
            {"hash": "abc", "ts": True},
            {"hash": "abc", "ts": float("inf")},
            {"hash": "abc", "ts": float("nan")},
            "abc",
            None,
        ],
    )
    def test_invalid_records(self, data):
        with pytest.raises(ValidationError):
            SentTokenRecord.model_validate(data)


class TestTokenInfo:

    def test_from_pair_without_optional_fields(self):
        token = TokenInfo.from_dexscreener_pair({"baseToken": {"address": "MintA"}})
        assert token.address == "MintA"
        assert token.volume_24h is None

    def test_from_pair_without_address(self):
        with pytest.raises(ValidationError):
            TokenInfo.from_dexscreener_pair({"priceUsd": "1"})
