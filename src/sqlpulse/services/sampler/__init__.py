"""Sampler service package.

Re-exports all public symbols::

    from sqlpulse.services.sampler import Sampler, SamplerConfig, MetricPublisher
"""

from .configs import PublisherConfig, SampleConfig, SamplerConfig
from .publisher import MetricPublisher, PublishResult, flatten
from .service import Sampler
from .sinks import MetricSink, PushgatewaySink, RegistrySink, build_sink


__all__ = [
    "MetricPublisher",
    "MetricSink",
    "PublishResult",
    "PublisherConfig",
    "PushgatewaySink",
    "RegistrySink",
    "SampleConfig",
    "Sampler",
    "SamplerConfig",
    "build_sink",
    "flatten",
]
