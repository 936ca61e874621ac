# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .credential_store import CredentialStore
from .types import AuthenticatedRequest, CredentialRole, Request


class RequestAuthenticator:
    """
    Attaches the *latest* access credential to a request.

    Must be called again for every attempt so that a retry after a refresh
    carries the new credential rather than the one current when the call
    was first built.
    """

    def __init__(self, store: CredentialStore):
        self._store = store

    def authenticate(self, request: Request) -> AuthenticatedRequest:
        return AuthenticatedRequest(
            request=request, credential=self._store.get(CredentialRole.ACCESS)
        )
