"""Configuration objects for the quote pipeline.

Every recognized option is declared here with its default and validated once,
when the model is built. Loading from files or the environment lives in
``infrastructure.config_loader``.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .enums import OverflowPolicy, PayloadFormat
from .exceptions import ConfigurationError
from .models import DEFAULT_EXCHANGE

DEFAULT_TOPIC = "market"
DEFAULT_SOURCE_NAME = "market-data"
DEFAULT_QUERY_LIMIT = 10


class _StrictConfig(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None):
        """Build the config, converting validation failures to ConfigurationError."""
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise ConfigurationError(
                f"Invalid {cls.__name__}: {first['msg']}", field=field
            ) from e


class GeneratorConfig(_StrictConfig):
    """Settings for one simulated instrument."""

    name: str = Field(..., min_length=1, description="Instrument name, required")
    symbol: str | None = Field(
        default=None, validate_default=True, description="Defaults to the name"
    )
    period: int = Field(default=1000, gt=0, description="Tick period in milliseconds")
    variation: int = Field(default=100)
    volume: int = Field(default=10000, ge=0, description="Total outstanding shares")
    price: float = Field(default=100.0, gt=0, allow_inf_nan=False, description="Opening price")
    mu: float = Field(default=0.00001, allow_inf_nan=False)
    sigma: float = Field(default=0.0001, allow_inf_nan=False)
    dt: float = Field(default=0.1, gt=0, allow_inf_nan=False)
    exchange: str = Field(default=DEFAULT_EXCHANGE, min_length=1)

    @field_validator("symbol")
    @classmethod
    def default_symbol_to_name(cls, v: str | None, info: ValidationInfo) -> str | None:
        return v or info.data.get("name")


class StorageConfig(_StrictConfig):
    """Storage connection descriptor for the audit log."""

    database: str = Field(default="audit.db", min_length=1, description="SQLite path or URI")
    uri: bool = Field(default=False, description="Interpret database as a sqlite URI")
    pool_size: int = Field(default=5, ge=1, le=64)
    acquire_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for a connection")

    @property
    def is_private_memory(self) -> bool:
        """Whether every connection would open its own, separate in-memory database."""
        if self.database == ":memory:":
            return True
        return self.uri and "mode=memory" in self.database and "cache=shared" not in self.database

    @model_validator(mode="after")
    def validate_memory_pool(self) -> StorageConfig:
        """Pooled connections must all see the same database."""
        if self.pool_size > 1 and self.is_private_memory:
            raise ValueError(
                "A private in-memory database needs pool_size=1; use a shared-cache URI "
                "such as 'file:audit?mode=memory&cache=shared' with uri=true for a larger pool"
            )
        return self


class AuditConfig(_StrictConfig):
    """Audit log settings."""

    drop: bool = Field(default=False, description="Drop the audit table at startup")
    query_limit: int = Field(default=DEFAULT_QUERY_LIMIT, ge=1, le=1000)
    payload_format: PayloadFormat = Field(default=PayloadFormat.JSON)
    storage: StorageConfig = Field(default_factory=StorageConfig)


class BusConfig(_StrictConfig):
    """Distribution bus settings."""

    buffer_size: int = Field(default=1024, ge=1, description="Per-subscription buffer bound")
    overflow: OverflowPolicy = Field(default=OverflowPolicy.DROP_OLDEST)


class PipelineConfig(_StrictConfig):
    """Top-level configuration of a running pipeline."""

    topic: str = Field(default=DEFAULT_TOPIC, min_length=1, description="Bus topic for quotes")
    source_name: str = Field(
        default=DEFAULT_SOURCE_NAME, min_length=1, description="Directory name of the topic"
    )
    generators: list[GeneratorConfig] = Field(default_factory=list)
    bus: BusConfig = Field(default_factory=BusConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    http_host: str = Field(default="0.0.0.0")  # nosec B104
    http_port: int = Field(default=8080, ge=0, le=65535)

    @field_validator("generators")
    @classmethod
    def validate_unique_names(cls, v: list[GeneratorConfig]) -> list[GeneratorConfig]:
        """Each instrument owns its snapshot entry, so names must be unique."""
        names = [g.name for g in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate generator names: {duplicates}")
        return v
