"""Configuration models shared by the loader and the sampler.

See Also:
    [LoaderConfig][sqlpulse.services.loader.LoaderConfig],
    [SamplerConfig][sqlpulse.services.sampler.SamplerConfig]: Service configs
        that embed these models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from sqlpulse.core.base_service import BaseServiceConfig
from sqlpulse.core.database import quote_identifier
from sqlpulse.models.constants import (
    DEFAULT_ADMIN_DATABASE,
    DEFAULT_PARAMETER_KEY,
    DEFAULT_TABLE_NAME,
    DEFAULT_TARGETS_FIELD,
)
from sqlpulse.stores.base import StoreConfig


class TargetsConfig(BaseModel):
    """Where the target list document lives.

    Attributes:
        key: Parameter store key of the JSON document.
        field: Name of the list field inside the document.
        store: Parameter store backend.
    """

    key: str = Field(default=DEFAULT_PARAMETER_KEY, min_length=1)
    field: str = Field(default=DEFAULT_TARGETS_FIELD, min_length=1)
    store: StoreConfig = Field(default_factory=lambda: StoreConfig(prefix="SQLPULSE_PARAM_"))


class SecretsConfig(BaseModel):
    """Secret store backend holding one credential payload per target."""

    store: StoreConfig = Field(default_factory=lambda: StoreConfig(prefix="SQLPULSE_SECRET_"))


class DatabaseConfig(BaseModel):
    """Connection settings applied to every target.

    The host, database and credentials come from each target; everything
    else is shared.
    """

    port: int = Field(default=5432, ge=1, le=65535, description="Server port")
    admin_database: str = Field(
        default=DEFAULT_ADMIN_DATABASE,
        min_length=1,
        description="Database used while ensuring the target database exists",
    )
    ssl: bool = Field(default=True, description="Encrypt connections")
    verify_certificate: bool = Field(default=False, description="Verify server certificates")
    connect_timeout: float = Field(default=15.0, gt=0.0, description="Connect timeout (s)")
    command_timeout: float = Field(default=30.0, gt=0.0, description="Statement timeout (s)")


class ConcurrencyConfig(BaseModel):
    """Fan-out concurrency.

    ``max_parallel`` unset means every target is dispatched at once, which
    is fine for tens of targets. Set a cap for large target lists.
    """

    max_parallel: int | None = Field(default=None, ge=1, description="Concurrent targets cap")


class TargetServiceConfig(BaseServiceConfig):
    """Configuration shared by every service that fans out over targets."""

    targets: TargetsConfig = Field(default_factory=TargetsConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    table: str = Field(default=DEFAULT_TABLE_NAME, description="Seeded table name")

    @field_validator("table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        """Reject table names that cannot be safely quoted."""
        quote_identifier(v)
        return v
