"""CLI entry point for sqlpulse services.

Runs either pipeline once (``--once``, for an external scheduler) or
continuously with a Prometheus metrics server.

Examples:
    ```bash
    python -m sqlpulse loader --once
    python -m sqlpulse sampler --log-level DEBUG
    python -m sqlpulse sampler --config config/services/sampler.yaml --json-logs
    ```

Exit status is 0 when the invocation (or the continuous run) succeeded and
1 otherwise.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from sqlpulse.core import start_metrics_server
from sqlpulse.core.base_service import BaseService
from sqlpulse.core.exceptions import InvocationError, SqlPulseError
from sqlpulse.core.logger import Logger, StructuredFormatter
from sqlpulse.core.yaml import load_yaml
from sqlpulse.models.constants import ServiceName
from sqlpulse.services.loader import Loader
from sqlpulse.services.sampler import Sampler


CONFIG_BASE = Path("config")


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.LOADER: ServiceEntry(Loader, CONFIG_BASE / "services" / "loader.yaml"),
    ServiceName.SAMPLER: ServiceEntry(Sampler, CONFIG_BASE / "services" / "sampler.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service: BaseService[Any],
    *,
    once: bool,
) -> int:
    """Run a service in one-shot or continuous mode.

    Args:
        service_name: Service identifier used for logging.
        service: Configured service instance.
        once: If True, run a single invocation and exit.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if once:
        try:
            async with service:
                service.check_run_mode(once=True)
                await service.run()
            logger.info(f"{service_name}_completed")
            return 0
        except InvocationError as e:
            logger.error(f"{service_name}_failed", error=str(e), failed=e.failed, total=e.total)
            return 1
        except SqlPulseError as e:
            logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
            return 1

    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            service.check_run_mode(once=False)
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = argparse.ArgumentParser(
        prog="sqlpulse",
        description="sqlpulse service runner",
    )

    parser.add_argument(
        "service",
        choices=list(SERVICE_REGISTRY.keys()),
        help="Service to run",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit one JSON object per log line",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single invocation and exit (default: run continuously)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str, *, json_output: bool = False) -> None:
    """Configure the root logger.

    In key=value mode a ``StructuredFormatter`` renders structured fields;
    in JSON mode the logger already emits complete JSON lines, so the
    handler prints the message as-is.
    """
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the service, and run it."""
    global logger  # noqa: PLW0603

    args = parse_args(argv)
    setup_logging(args.log_level, json_output=args.json_logs)
    logger = Logger("cli", json_output=args.json_logs)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path
    service_dict = _load_yaml_dict(config_path)

    try:
        service = entry.cls.from_dict(service_dict) if service_dict else entry.cls()
    except ValueError as e:
        logger.error("invalid_config", path=str(config_path), error=str(e))
        return 1

    try:
        return await run_service(args.service, service, once=args.once)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
