"""Loader service package.

Re-exports all public symbols::

    from sqlpulse.services.loader import Loader, LoaderConfig, SeedConfig
"""

from .configs import LoaderConfig, SeedConfig
from .service import Loader


__all__ = [
    "Loader",
    "LoaderConfig",
    "SeedConfig",
]
