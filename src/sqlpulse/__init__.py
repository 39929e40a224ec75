r"""sqlpulse -- scheduled seeding and sampling of remote databases.

Two pipelines share one shape: resolve a list of database targets, resolve
credentials per target, connect, do one unit of work, and combine the
per-target outcomes. The loader writes a synthetic row into every target;
the sampler reads the latest row back and publishes it as a metric.

Imports flow strictly downward:

```text
          services        Loader, Sampler, fan-out, resolvers
           /    \
        core    stores    Logging, metrics, config, database; store backends
           \    /
           models         Frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from sqlpulse import Sampler``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version


try:
    __version__ = _get_version("sqlpulse")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

__all__ = [
    "BaseService",
    "ConnectionOutcome",
    "Credential",
    "Loader",
    "LoaderConfig",
    "Logger",
    "MetricSample",
    "MetricUnit",
    "Sampler",
    "SamplerConfig",
    "TargetDescriptor",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("sqlpulse.core", "BaseService"),
    "Logger": ("sqlpulse.core", "Logger"),
    "ConnectionOutcome": ("sqlpulse.models", "ConnectionOutcome"),
    "Credential": ("sqlpulse.models", "Credential"),
    "MetricSample": ("sqlpulse.models", "MetricSample"),
    "MetricUnit": ("sqlpulse.models", "MetricUnit"),
    "TargetDescriptor": ("sqlpulse.models", "TargetDescriptor"),
    "Loader": ("sqlpulse.services", "Loader"),
    "LoaderConfig": ("sqlpulse.services", "LoaderConfig"),
    "Sampler": ("sqlpulse.services", "Sampler"),
    "SamplerConfig": ("sqlpulse.services", "SamplerConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'sqlpulse' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
