"""Parameter and secret store backends.

Attributes:
    ParameterStore: Protocol returning the target list document by key.
    SecretStore: Protocol returning a credential payload by reference.
    StoreConfig: Backend selection model embedded in service configs.
    build_parameter_store: Build a parameter store from a
        [StoreConfig][sqlpulse.stores.base.StoreConfig].
    build_secret_store: Build a secret store from a
        [StoreConfig][sqlpulse.stores.base.StoreConfig].
"""

from .base import ParameterStore, SecretStore, StoreConfig
from .env import EnvParameterStore, EnvSecretStore, env_var_name
from .file import FileParameterStore, FileSecretStore


def build_parameter_store(config: StoreConfig) -> ParameterStore:
    """Instantiate the parameter store backend named by ``config.backend``."""
    if config.backend == "file":
        return FileParameterStore(config.root)
    return EnvParameterStore(prefix=config.prefix)


def build_secret_store(config: StoreConfig) -> SecretStore:
    """Instantiate the secret store backend named by ``config.backend``."""
    if config.backend == "file":
        return FileSecretStore(config.root)
    return EnvSecretStore(prefix=config.prefix)


__all__ = [
    "EnvParameterStore",
    "EnvSecretStore",
    "FileParameterStore",
    "FileSecretStore",
    "ParameterStore",
    "SecretStore",
    "StoreConfig",
    "build_parameter_store",
    "build_secret_store",
    "env_var_name",
]
