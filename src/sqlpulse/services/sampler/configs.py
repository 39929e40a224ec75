"""Sampler service configuration models.

See Also:
    [Sampler][sqlpulse.services.sampler.Sampler]: The service class that
        consumes these configurations.
    [TargetServiceConfig][sqlpulse.services.common.configs.TargetServiceConfig]:
        Base class providing targets, secrets, database, concurrency and
        table fields.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from sqlpulse.models.constants import DEFAULT_METRIC_NAME, DEFAULT_NAMESPACE
from sqlpulse.models.metric import MetricUnit
from sqlpulse.services.common.configs import TargetServiceConfig


class PublisherConfig(BaseModel):
    """Where sampled metrics are published.

    Attributes:
        namespace: Namespace the batch is published under.
        sink: ``"registry"`` exposes samples on the service's ``/metrics``
            endpoint; ``"pushgateway"`` pushes each batch to a Prometheus
            Pushgateway.
        gateway_url: Pushgateway address, required for the ``pushgateway``
            sink.
        job: Pushgateway job name.
        timeout: Push timeout in seconds.
        max_batch_size: Largest batch the sink accepts.
    """

    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    sink: Literal["registry", "pushgateway"] = Field(default="registry")
    gateway_url: str | None = Field(default=None, description="Pushgateway URL")
    job: str = Field(default="sqlpulse_sampler", min_length=1)
    timeout: float = Field(default=10.0, gt=0.0)
    max_batch_size: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def validate_gateway(self) -> PublisherConfig:
        """The pushgateway sink needs a URL."""
        if self.sink == "pushgateway" and not self.gateway_url:
            raise ValueError("gateway_url is required when sink is 'pushgateway'")
        return self


class SampleConfig(BaseModel):
    """Shape of the sample produced for each target."""

    metric_name: str = Field(default=DEFAULT_METRIC_NAME, min_length=1)
    unit: MetricUnit = Field(default=MetricUnit.COUNT)


class SamplerConfig(TargetServiceConfig):
    """Sampler service configuration."""

    sample: SampleConfig = Field(default_factory=SampleConfig)
    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
