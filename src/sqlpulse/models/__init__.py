"""Pure data models shared by every sqlpulse layer.

Attributes:
    TargetDescriptor: One server/database pair plus its secret reference.
    Credential: Username and ``SecretStr`` password for one target.
    MetricSample: Named measurement with dimensions, unit and value.
    MetricUnit: Units a sample can carry.
    ConnectionOutcome: Success or typed failure of one unit of work.
    AggregateResult: One outcome per target, in input order.
"""

from .constants import ServiceName, UnitStep
from .credential import Credential
from .metric import MetricSample, MetricUnit
from .outcome import AggregateResult, ConnectionOutcome, failures, successes
from .target import TargetDescriptor


__all__ = [
    "AggregateResult",
    "ConnectionOutcome",
    "Credential",
    "MetricSample",
    "MetricUnit",
    "ServiceName",
    "TargetDescriptor",
    "UnitStep",
    "failures",
    "successes",
]
