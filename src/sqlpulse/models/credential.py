"""Resolved database credential.

Credentials are resolved fresh for every target on every invocation and
dropped as soon as the unit of work that requested them finishes. The
password is held as a pydantic ``SecretStr`` so it cannot leak through
``repr()``, f-strings or structured log fields.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import SecretStr


@dataclass(frozen=True, slots=True)
class Credential:
    """Username/password pair for one target.

    Attributes:
        username: Database login name.
        password: Database password; call ``get_secret_value()`` only at
            the driver boundary.
    """

    username: str
    password: SecretStr

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password=SecretStr('**********'))"
