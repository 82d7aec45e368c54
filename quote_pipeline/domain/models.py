"""Domain models using Pydantic for validation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import RecordType

DEFAULT_EXCHANGE = "simulated stock exchange"


class Quote(BaseModel):
    """One simulated market data point for an instrument.

    Bid and ask are jittered independently around the underlying value, so
    ``bid <= ask`` is not an invariant of this model.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        json_schema_extra={
            "example": {
                "exchange": DEFAULT_EXCHANGE,
                "symbol": "MCH",
                "name": "MacroHard",
                "bid": 3389.0921,
                "ask": 3389.2406,
                "volume": 90000,
                "open": 3389.0,
                "shares": 45042,
            }
        },
    )

    exchange: str = Field(default=DEFAULT_EXCHANGE, min_length=1)
    symbol: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    bid: float = Field(..., gt=0, allow_inf_nan=False)
    ask: float = Field(..., gt=0, allow_inf_nan=False)
    volume: int = Field(..., ge=0, description="Total outstanding shares")
    open: float = Field(..., gt=0, allow_inf_nan=False, description="Initial reference price")
    shares: int = Field(..., ge=0, description="Currently tradable shares")

    @model_validator(mode="after")
    def validate_shares_within_volume(self) -> Quote:
        """Tradable shares can never exceed the outstanding volume."""
        if self.shares > self.volume:
            raise ValueError(f"shares ({self.shares}) cannot exceed volume ({self.volume})")
        return self


class GeneratorState(BaseModel):
    """Evolving state of one simulated instrument.

    Owned by exactly one scheduler. The random process engine never mutates
    an instance; each tick produces a new one.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    exchange: str = Field(default=DEFAULT_EXCHANGE)
    period: int = Field(..., gt=0, description="Tick period in milliseconds")
    variation: int = Field(...)
    mu: float = Field(..., allow_inf_nan=False, description="Mean drift")
    sigma: float = Field(..., allow_inf_nan=False, description="Volatility")
    dt: float = Field(..., gt=0, allow_inf_nan=False, description="Time step")
    volume: int = Field(..., ge=0)
    open: float = Field(..., gt=0, allow_inf_nan=False)
    value: float = Field(..., allow_inf_nan=False)
    bid: float = Field(..., allow_inf_nan=False)
    ask: float = Field(..., allow_inf_nan=False)
    share: int = Field(..., ge=0)

    def to_quote(self) -> Quote:
        """Render the current state as a quote."""
        return Quote(
            exchange=self.exchange,
            symbol=self.symbol,
            name=self.name,
            bid=self.bid,
            ask=self.ask,
            volume=self.volume,
            open=self.open,
            shares=self.share,
        )


class AuditRecord(BaseModel):
    """A durably stored copy of a distributed quote."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int = Field(..., ge=1, description="Auto-incremented identity")
    operation: Quote


class ServiceRecord(BaseModel):
    """A named record published in the service directory."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(..., min_length=1)
    record_type: RecordType = Field(default=RecordType.MESSAGE_SOURCE)
    location: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: dict[str, Any]) -> dict[str, Any]:
        """A record must say where it can be reached."""
        if not v:
            raise ValueError("location cannot be empty")
        return v
