"""Pydantic schemas for persisted records and market data."""

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SentTokenRecord(BaseModel):
    """One remembered token fingerprint for a user.

    Persisted as ``{"hash": str, "ts": int}`` inside the user's JSON array.
    ``ts`` is the epoch time in milliseconds when the token was sent. A
    record without ``ts`` counts as sent at epoch 0 and is therefore
    already expired.
    """

    model_config = ConfigDict(extra="ignore")

    hash: str = Field(..., min_length=1, description="Token fingerprint")
    ts: int = Field(default=0, description="Epoch milliseconds when recorded")

    @field_validator("ts", mode="before")
    @classmethod
    def validate_ts(cls, v: Any) -> int:
        """Accept integral and float timestamps, reject everything else."""
        if v is None:
            return 0
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("ts must be a number")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("ts must be finite")
        return int(v)


class TokenInfo(BaseModel):
    """Normalized token entry built from a DexScreener pair."""

    model_config = ConfigDict(str_strip_whitespace=True)

    address: str = Field(..., min_length=1)
    name: Optional[str] = None
    symbol: Optional[str] = None
    price_usd: Optional[str] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    liquidity_usd: Optional[float] = None
    pair_address: Optional[str] = None
    dex_id: Optional[str] = None
    pair_created_at: Optional[int] = None
    url: Optional[str] = None

    @classmethod
    def from_dexscreener_pair(cls, pair: dict[str, Any]) -> "TokenInfo":
        """Build a TokenInfo from one DexScreener pair object.

        Raises:
            pydantic.ValidationError: If the pair has no base token address.
        """
        base = pair.get("baseToken") or {}
        volume = pair.get("volume") or {}
        liquidity = pair.get("liquidity") or {}
        return cls(
            address=base.get("address") or "",
            name=base.get("name"),
            symbol=base.get("symbol"),
            price_usd=pair.get("priceUsd"),
            market_cap=pair.get("marketCap"),
            volume_24h=volume.get("h24"),
            liquidity_usd=liquidity.get("usd"),
            pair_address=pair.get("pairAddress"),
            dex_id=pair.get("dexId"),
            pair_created_at=pair.get("pairCreatedAt"),
            url=pair.get("url"),
        )
