"""Shared constants for the models layer.

See Also:
    [BaseService][sqlpulse.core.base_service.BaseService]: Uses
        [ServiceName][sqlpulse.models.constants.ServiceName] for logging and
        metric labels.
    [ConnectionOutcome][sqlpulse.models.outcome.ConnectionOutcome]: Tags
        failures with a [UnitStep][sqlpulse.models.constants.UnitStep].
"""

from __future__ import annotations

from enum import StrEnum


# Defaults shared by both pipelines. Each one is overridable through the
# service configuration.
DEFAULT_PARAMETER_KEY = "/example/SqlToCwDemo"
DEFAULT_TARGETS_FIELD = "dbConnections"
DEFAULT_TABLE_NAME = "SqlToCwTable"
DEFAULT_METRIC_NAME = "TestMetric"
DEFAULT_NAMESPACE = "TestNamespace"
DEFAULT_ADMIN_DATABASE = "postgres"

# countItems is drawn from [0, SEED_VALUE_UPPER_BOUND)
SEED_VALUE_UPPER_BOUND = 100


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        LOADER: Write pipeline that seeds one row per target
            ([Loader][sqlpulse.services.loader.Loader]).
        SAMPLER: Read pipeline that samples the latest row per target and
            publishes it ([Sampler][sqlpulse.services.sampler.Sampler]).
    """

    LOADER = "loader"
    SAMPLER = "sampler"


class UnitStep(StrEnum):
    """Step of a unit of work, used to tag where a target failed.

    Attributes:
        RESOLVE_CREDENTIALS: Fetching and decoding the target's secret.
        CONNECT: Opening a connection to the server.
        ENSURE_DATABASE: Checking for and creating the target database.
        ENSURE_TABLE: Checking for and creating the seeded table.
        INSERT_ROW: Inserting the synthetic row.
        QUERY: Selecting the latest row.
        EXTRACT: Turning the selected row into metric samples.
        UNEXPECTED: An error the unit of work did not classify itself.
    """

    RESOLVE_CREDENTIALS = "resolve_credentials"
    CONNECT = "connect"
    ENSURE_DATABASE = "ensure_database"
    ENSURE_TABLE = "ensure_table"
    INSERT_ROW = "insert_row"
    QUERY = "query"
    EXTRACT = "extract"
    UNEXPECTED = "unexpected"
