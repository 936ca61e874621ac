# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Access-credential refresh.

A refresher reads the refresh credential from the store, performs the
exchange, and on success writes the new access credential back. It never
changes the refresh credential itself.

Refreshers do not deduplicate concurrent calls. Wrap one in
SingleFlightRefresher to coalesce concurrent refreshes into a single
exchange.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import httpx

from .credential_store import CredentialStore
from .errors import classify_exception, classify_status_code
from .transport import ACCEPTED_ACCESS_TOKEN
from .types import CredentialRole, Failure, FailureKind, Outcome, Success
from .utils import mask_credential

lib_logger = logging.getLogger("auth_pipeline")

ACCEPTED_REFRESH_TOKEN = "validRefreshToken"


class CredentialRefresher(ABC):
    def __init__(self, store: CredentialStore):
        self.store = store
        self.refresh_count = 0

    @abstractmethod
    async def _exchange(self, refresh_token: str) -> Outcome:
        """
        Performs the unauthenticated exchange.

        Resolves to Success(new_access_token) or a classified Failure.
        """
        pass

    async def refresh(self) -> Outcome:
        self.refresh_count += 1
        refresh_token = self.store.get(CredentialRole.REFRESH)
        lib_logger.info(
            f"Refreshing the access credential with refresh credential {mask_credential(refresh_token)}"
        )

        outcome = await self._exchange(refresh_token)
        if not outcome.ok:
            lib_logger.warning(
                f"Access credential refresh failed ({outcome.kind.value}): {outcome.detail}"
            )
            return outcome

        self.store.set(CredentialRole.ACCESS, outcome.payload)
        return outcome


class SimulatedRefresher(CredentialRefresher):
    """
    In-memory refresh endpoint.

    Issues `issued_token` when presented with `accepted_refresh_token`;
    rejects anything else as CREDENTIAL_EXPIRED.
    """

    def __init__(
        self,
        store: CredentialStore,
        accepted_refresh_token: str = ACCEPTED_REFRESH_TOKEN,
        issued_token: str = ACCEPTED_ACCESS_TOKEN,
        latency: float = 2.0,
    ):
        super().__init__(store)
        self.accepted_refresh_token = accepted_refresh_token
        self.issued_token = issued_token
        self.latency = latency
        self.presented: List[str] = []

    async def _exchange(self, refresh_token: str) -> Outcome:
        self.presented.append(refresh_token)
        await asyncio.sleep(self.latency)
        if refresh_token != self.accepted_refresh_token:
            return Failure(
                FailureKind.CREDENTIAL_EXPIRED, detail="refresh credential rejected", status_code=401
            )
        return Success(payload=self.issued_token, status_code=200)


class HttpCredentialRefresher(CredentialRefresher):
    """
    Refreshes against an HTTP token endpoint.

    POSTs `{"refresh_token": ...}` to `refresh_url` and reads `access_token`
    (or `accessToken`) from the JSON response.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresh_url: str,
        shared_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        expired_statuses: Optional[Iterable[int]] = None,
    ):
        super().__init__(store)
        self.refresh_url = refresh_url
        self._shared_client = shared_client
        self._timeout = timeout
        self._expired_statuses = (
            frozenset(expired_statuses) if expired_statuses is not None else None
        )

    async def _post(self, client: httpx.AsyncClient, refresh_token: str) -> httpx.Response:
        return await client.post(
            self.refresh_url,
            json={"refresh_token": refresh_token},
            headers={"Content-Type": "application/json"},
        )

    async def _exchange(self, refresh_token: str) -> Outcome:
        try:
            if self._shared_client is not None:
                response = await self._post(self._shared_client, refresh_token)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, refresh_token)
        except httpx.HTTPError as exc:
            lib_logger.error(f"Network error refreshing access credential: {exc!r}")
            return classify_exception(exc, self._expired_statuses)

        kind = classify_status_code(response.status_code, self._expired_statuses)
        if kind is not None:
            return Failure(kind, detail=response.text[:500], status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            return Failure(
                FailureKind.OTHER_ERROR,
                detail="refresh response is not JSON",
                status_code=response.status_code,
            )

        new_access_token = None
        if isinstance(data, dict):
            new_access_token = data.get("access_token") or data.get("accessToken")
        if not new_access_token or not isinstance(new_access_token, str):
            return Failure(
                FailureKind.OTHER_ERROR,
                detail="refresh response missing access_token",
                status_code=response.status_code,
            )
        return Success(payload=new_access_token, status_code=response.status_code)


class SingleFlightRefresher:
    """
    Coalesces concurrent refreshes.

    While a refresh is in flight on an event loop, further callers on that
    loop await the same task and receive its outcome instead of starting a
    second exchange.
    """

    def __init__(self, inner: CredentialRefresher):
        self.inner = inner
        self._inflight: Dict[asyncio.AbstractEventLoop, asyncio.Task] = {}
        self._guard = threading.Lock()

    @property
    def store(self) -> CredentialStore:
        return self.inner.store

    @property
    def refresh_count(self) -> int:
        return self.inner.refresh_count

    def _forget(self, loop: asyncio.AbstractEventLoop, task: asyncio.Task) -> None:
        with self._guard:
            if self._inflight.get(loop) is task:
                del self._inflight[loop]

    async def refresh(self) -> Outcome:
        loop = asyncio.get_running_loop()
        with self._guard:
            task = self._inflight.get(loop)
            if task is None:
                task = loop.create_task(self.inner.refresh())
                self._inflight[loop] = task
                task.add_done_callback(lambda t: self._forget(loop, t))
            else:
                lib_logger.debug("Joining in-flight access credential refresh")
        # Shielded so one cancelled waiter does not cancel the shared refresh.
        return await asyncio.shield(task)
