"""Loader service for sqlpulse.

Writes one synthetic row into every configured database target. For each
target the unit of work:

1. resolves the target's credentials;
2. connects to the server's admin database;
3. creates the target database if it does not exist;
4. connects to the target database and creates the seeded table if it
   does not exist;
5. inserts one row with a pseudo-random ``countItems`` in ``[0, 100)``.

Any failing step stops that target only; the others carry on.

Note:
    Creating the database and table is an intentional side effect, so a
    brand-new server can be pointed at without preparation. Both checks
    are idempotent: on later runs nothing is recreated.

See Also:
    [Sampler][sqlpulse.services.sampler.Sampler]: Reads back the rows
        this service writes.
    [LoaderConfig][sqlpulse.services.loader.LoaderConfig]: Configuration
        model for this service.

Examples:
    ```python
    from sqlpulse.services.loader import Loader

    loader = Loader.from_yaml("config/services/loader.yaml")
    async with loader:
        await loader.run()
    ```
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, ClassVar

from sqlpulse.core.database import connect
from sqlpulse.core.exceptions import SqlPulseError
from sqlpulse.models.constants import ServiceName, UnitStep
from sqlpulse.models.outcome import ConnectionOutcome
from sqlpulse.services.common.queries import ensure_database, ensure_table, insert_seed_row
from sqlpulse.services.common.service import UNIT_OF_WORK_ERRORS, TargetService, classify_error

from .configs import LoaderConfig


if TYPE_CHECKING:
    from sqlpulse.models.target import TargetDescriptor


class Loader(TargetService[LoaderConfig, None]):
    """Write pipeline: seed one row per target.

    See Also:
        [TargetService][sqlpulse.services.common.service.TargetService]:
            Resolve/fan-out/report cycle this class plugs into.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.LOADER
    CONFIG_CLASS: ClassVar[type[LoaderConfig]] = LoaderConfig

    def next_value(self) -> int:
        """Draw the ``countItems`` value for the next row."""
        seed = self._config.seed
        return random.randrange(seed.low, seed.high)  # noqa: S311

    async def execute(self, target: TargetDescriptor) -> ConnectionOutcome[None]:
        """Seed one row into ``target``.

        Returns:
            ``success(target, None)`` once the row is inserted, otherwise a
            failure tagged with the step that failed.
        """
        table = self._config.table
        step = UnitStep.RESOLVE_CREDENTIALS
        try:
            credential = await self._credentials.resolve(target.credential_ref)

            step = UnitStep.CONNECT
            admin_params = self._connect_params(
                target, credential, self._config.database.admin_database
            )
            async with connect(self._connector, admin_params) as admin:
                step = UnitStep.ENSURE_DATABASE
                created = await ensure_database(admin, target.database_name)
            if created:
                self._logger.info("database_created", **target.log_fields())

            step = UnitStep.CONNECT
            params = self._connect_params(target, credential, target.database_name)
            async with connect(self._connector, params) as conn:
                step = UnitStep.ENSURE_TABLE
                if await ensure_table(conn, table):
                    self._logger.info("table_created", table=table, **target.log_fields())

                step = UnitStep.INSERT_ROW
                value = self.next_value()
                await insert_seed_row(conn, table, value)

        except SqlPulseError as e:
            return ConnectionOutcome.failure(target, e, step)
        except UNIT_OF_WORK_ERRORS as e:
            return ConnectionOutcome.failure(target, classify_error(step, e), step)

        self._logger.debug("row_inserted", table=table, count_items=value, **target.log_fields())
        return ConnectionOutcome.success(target, None)
