"""
Database target descriptor.

A [TargetDescriptor][sqlpulse.models.target.TargetDescriptor] names one
server/database pair and the secret holding the credentials for it. One is
built for every entry of the ``dbConnections`` list and discarded when the
invocation that produced it completes.

See Also:
    [TargetListResolver][sqlpulse.services.common.resolvers.TargetListResolver]:
        Produces descriptors from the parameter store document.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """One database target.

    Attributes:
        credential_ref: Secret reference (``dbSecretId``) holding the
            username and password for this target.
        server_address: Database server host name (``dbServer``).
        database_name: Database to seed or sample on that server
            (``database``).
    """

    credential_ref: str
    server_address: str
    database_name: str

    def __post_init__(self) -> None:
        for name in ("credential_ref", "server_address", "database_name"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")

    @property
    def label(self) -> str:
        """``server/database``, used to identify the target in logs and errors."""
        return f"{self.server_address}/{self.database_name}"

    def log_fields(self) -> dict[str, str]:
        """Structured logging fields identifying this target."""
        return {"server": self.server_address, "database": self.database_name}
