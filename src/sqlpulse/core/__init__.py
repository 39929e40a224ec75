"""Core layer providing the foundation for both sqlpulse pipelines.

Depends only on ``sqlpulse.models`` and is depended upon by
``sqlpulse.stores`` and ``sqlpulse.services``.

Attributes:
    BaseService: Abstract generic base class with lifecycle management
        (``run()`` / ``run_forever()`` / shutdown), factory methods
        (``from_yaml()``, ``from_dict()``) and Prometheus metrics.
    Connector: Protocol for opening one database connection; the
        production implementation is
        [AsyncpgConnector][sqlpulse.core.database.AsyncpgConnector].
    Logger: Structured logger supporting key=value and JSON output, with
        credential redaction.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    load_yaml: Safe YAML loading with environment expansion.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .database import (
    AsyncpgConnector,
    Connection,
    ConnectParams,
    Connector,
    connect,
    quote_identifier,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    UNIT_OF_WORK_SECONDS,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "UNIT_OF_WORK_SECONDS",
    "AsyncpgConnector",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConnectParams",
    "Connection",
    "Connector",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "StructuredFormatter",
    "connect",
    "format_kv_pairs",
    "load_yaml",
    "quote_identifier",
    "start_metrics_server",
]
