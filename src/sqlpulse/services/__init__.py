r"""The two sqlpulse pipelines plus shared building blocks.

Both services extend
[TargetService][sqlpulse.services.common.service.TargetService] and
implement ``execute()`` for one target; ``run()`` performs one invocation.

```text
            TargetListResolver
                    |
                 fan_out
          /         |         \
   target 1     target 2  ...  target N     (CredentialResolver + execute)
          \         |         /
   Loader: done      Sampler: MetricPublisher
```

Attributes:
    Loader: Write pipeline; seeds one row per target, creating the
        database and table on first use.
    Sampler: Read pipeline; samples the latest row per target and
        publishes one metric per target.

Examples:
    ```python
    from sqlpulse.services import Sampler

    sampler = Sampler.from_yaml("config/services/sampler.yaml")
    async with sampler:
        await sampler.run()
    ```
"""

from .loader import (
    Loader,
    LoaderConfig,
)
from .sampler import (
    Sampler,
    SamplerConfig,
)


__all__ = [
    "Loader",
    "LoaderConfig",
    "Sampler",
    "SamplerConfig",
]
