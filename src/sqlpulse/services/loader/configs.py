"""Loader service configuration models.

See Also:
    [Loader][sqlpulse.services.loader.Loader]: The service class that
        consumes these configurations.
    [TargetServiceConfig][sqlpulse.services.common.configs.TargetServiceConfig]:
        Base class providing targets, secrets, database, concurrency and
        table fields.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from sqlpulse.models.constants import SEED_VALUE_UPPER_BOUND
from sqlpulse.services.common.configs import TargetServiceConfig


class SeedConfig(BaseModel):
    """Range of the synthetic ``countItems`` value, ``[low, high)``."""

    low: int = Field(default=0, description="Inclusive lower bound")
    high: int = Field(default=SEED_VALUE_UPPER_BOUND, description="Exclusive upper bound")

    @model_validator(mode="after")
    def validate_range(self) -> SeedConfig:
        """Ensure the range is not empty."""
        if self.high <= self.low:
            raise ValueError(f"high ({self.high}) must be > low ({self.low})")
        return self


class LoaderConfig(TargetServiceConfig):
    """Loader service configuration."""

    seed: SeedConfig = Field(default_factory=SeedConfig)
