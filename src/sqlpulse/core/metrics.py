"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are shared by both pipelines.
[BaseService.run_forever()][sqlpulse.core.base_service.BaseService.run_forever]
records cycle counts, durations and failure streaks automatically;
[TargetService][sqlpulse.services.common.service.TargetService] adds
per-target outcome counters and unit-of-work latencies.

The ``MetricsServer`` exposes everything registered in the default
``prometheus_client`` registry -- including the samples published by
[RegistrySink][sqlpulse.services.sampler.sinks.RegistrySink] -- on an
aiohttp ``/metrics`` endpoint.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (current state).
    SERVICE_COUNTER:            Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:     Histogram of whole-cycle latency.
    UNIT_OF_WORK_SECONDS:       Histogram of per-target latency.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    Set ``host`` to ``"0.0.0.0"`` in container environments to allow
    external scraping. The endpoint is only started when ``enabled``
    is True.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Service Metrics
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "sqlpulse_service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "sqlpulse_cycle_duration_seconds",
    "Duration of a full pipeline cycle in seconds",
    ["service"],
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)

UNIT_OF_WORK_SECONDS = Histogram(
    "sqlpulse_unit_of_work_seconds",
    "Duration of one target's unit of work in seconds",
    ["service", "outcome"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)

# Automatic names (BaseService.run_forever):
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}
# TargetService names:
#   gauge:   targets, targets_failed
#   counter: targets_succeeded_total, targets_failed_total, step_failed_{step}

SERVICE_GAUGE = Gauge(
    "sqlpulse_service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "sqlpulse_service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible /metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry = REGISTRY) -> None:
        self._config = config
        self._registry = registry
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for Prometheus scrape requests.

        No-op if metrics are disabled in the configuration.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server. Safe to call if it was never started."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        output = generate_latest(self._registry)
        return web.Response(body=output, headers={"Content-Type": CONTENT_TYPE_LATEST})


async def start_metrics_server(
    config: MetricsConfig | None = None,
) -> MetricsServer:
    """Create and start a metrics server.

    Args:
        config: Metrics configuration. Uses defaults if not provided.

    Returns:
        A running MetricsServer instance. Call ``stop()`` during shutdown
        to release the bound port.
    """
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
