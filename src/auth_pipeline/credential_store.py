# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
import threading
from types import MappingProxyType
from typing import Mapping, Union

from .types import CredentialRole
from .utils import mask_credential

lib_logger = logging.getLogger("auth_pipeline")

INVALID_MARKERS = {
    CredentialRole.ACCESS: "invalidToken",
    CredentialRole.REFRESH: "invalidRefreshToken",
}


class CredentialStore:
    """
    Holds the current access and refresh credentials for the process.

    Reads never take a lock: the current values live in an immutable mapping
    that writers swap out whole. Writers serialize on a threading lock, so
    the last completed write wins and no write is lost to another.
    """

    def __init__(self, access_token: str, refresh_token: str):
        self._validate(access_token)
        self._validate(refresh_token)
        self._values: Mapping[CredentialRole, str] = MappingProxyType(
            {CredentialRole.ACCESS: access_token, CredentialRole.REFRESH: refresh_token}
        )
        self._write_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "CredentialStore":
        return cls(settings.access_token, settings.refresh_token)

    @staticmethod
    def _validate(value: str) -> None:
        if not isinstance(value, str) or not value:
            raise ValueError("Credential values must be non-empty strings")

    def get(self, role: Union[CredentialRole, str]) -> str:
        """Returns the current value for the role. Never blocks."""
        return self._values[CredentialRole(role)]

    def set(self, role: Union[CredentialRole, str], value: str) -> None:
        """
        Atomically replaces the current value for the role.

        Snapshots already taken by readers are unaffected; reads that start
        after this returns observe `value`.
        """
        role = CredentialRole(role)
        self._validate(value)
        with self._write_lock:
            updated = dict(self._values)
            updated[role] = value
            self._values = MappingProxyType(updated)
        lib_logger.info(
            f"{role.value.capitalize()} credential is now {mask_credential(value)}"
        )

    def invalidate(self, role: Union[CredentialRole, str]) -> None:
        """Overrides the role with a value no endpoint accepts (simulates logout/rotation)."""
        role = CredentialRole(role)
        self.set(role, INVALID_MARKERS[role])

    def snapshot(self) -> Mapping[CredentialRole, str]:
        """Both credentials as of a single instant."""
        return self._values
