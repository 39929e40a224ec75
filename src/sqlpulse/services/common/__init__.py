"""Building blocks shared by the loader and sampler pipelines.

Attributes:
    TargetListResolver: Parameter store document to target descriptors.
    CredentialResolver: Secret payload to credential, never cached.
    fan_out: Collect-all concurrent dispatch over targets.
    TargetService: Resolve/fan-out/report cycle on top of
        [BaseService][sqlpulse.core.base_service.BaseService].
"""

from .configs import (
    ConcurrencyConfig,
    DatabaseConfig,
    SecretsConfig,
    TargetsConfig,
    TargetServiceConfig,
)
from .fanout import UnitOfWork, fan_out
from .queries import (
    ensure_database,
    ensure_table,
    fetch_latest_count,
    insert_seed_row,
)
from .resolvers import CredentialResolver, TargetListResolver
from .service import UNIT_OF_WORK_ERRORS, CycleReport, TargetService, classify_error


__all__ = [
    "UNIT_OF_WORK_ERRORS",
    "ConcurrencyConfig",
    "CredentialResolver",
    "CycleReport",
    "DatabaseConfig",
    "SecretsConfig",
    "TargetListResolver",
    "TargetService",
    "TargetServiceConfig",
    "TargetsConfig",
    "UnitOfWork",
    "classify_error",
    "ensure_database",
    "ensure_table",
    "fan_out",
    "fetch_latest_count",
    "insert_seed_row",
]
