# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

import httpx

from .audit_logger import log_attempt
from .errors import classify_exception, classify_status_code
from .types import AuthenticatedRequest, Failure, FailureKind, HttpMethod, Outcome, Success

lib_logger = logging.getLogger("auth_pipeline")

ACCEPTED_ACCESS_TOKEN = "validToken"


class Transport(ABC):
    """
    Executes an authenticated request against a remote endpoint.

    Implementations resolve to an Outcome rather than raising for network
    level failures. The pipeline assumes nothing beyond that contract.
    """

    @abstractmethod
    async def execute(self, authenticated_request: AuthenticatedRequest) -> Outcome:
        pass


class SimulatedTransport(Transport):
    """
    In-memory endpoint that only validates the attached access credential.

    A request carrying `accepted_token` succeeds with its own payload echoed
    back; anything else is rejected as CREDENTIAL_EXPIRED. `accepted_token`
    may be reassigned to model server-side rotation.
    """

    def __init__(
        self,
        accepted_token: str = ACCEPTED_ACCESS_TOKEN,
        latency: float = 2.0,
        response_payload: Any = None,
    ):
        self.accepted_token = accepted_token
        self.latency = latency
        self._response_payload = response_payload
        self.calls: List[AuthenticatedRequest] = []

    async def execute(self, authenticated_request: AuthenticatedRequest) -> Outcome:
        self.calls.append(authenticated_request)
        log_attempt(authenticated_request, transport="simulated", attempt=len(self.calls))
        await asyncio.sleep(self.latency)

        if authenticated_request.credential != self.accepted_token:
            return Failure(
                FailureKind.CREDENTIAL_EXPIRED, detail="access credential rejected", status_code=401
            )
        payload = (
            authenticated_request.payload
            if self._response_payload is None
            else self._response_payload
        )
        return Success(payload=payload, status_code=200)


class HttpTransport(Transport):
    """
    httpx-backed transport.

    `destination` is joined onto `base_url` unless it is already absolute.
    Pass `shared_client` to reuse a connection pool; otherwise the transport
    owns (and closes) its own client.
    """

    def __init__(
        self,
        base_url: str = "",
        shared_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        expired_statuses: Optional[Iterable[int]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._shared_client = shared_client
        self._owns_client = shared_client is None
        self._timeout = timeout
        self._expired_statuses = (
            frozenset(expired_statuses) if expired_statuses is not None else None
        )
        self.client: Optional[httpx.AsyncClient] = shared_client
        self.attempts = 0

    async def _get_client(self) -> httpx.AsyncClient:
        if self._shared_client is not None:
            return self._shared_client

        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout=self._timeout), follow_redirects=True
            )
        return self.client

    async def close(self) -> None:
        if not self._owns_client:
            return
        if self.client and not self.client.is_closed:
            try:
                await self.client.aclose()
            except Exception as exc:
                lib_logger.warning(f"Error closing HTTP client: {exc}")

    def _resolve_url(self, destination: str) -> str:
        if destination.startswith(("http://", "https://")) or not self.base_url:
            return destination
        return f"{self.base_url}/{destination.lstrip('/')}"

    def _build_kwargs(self, authenticated_request: AuthenticatedRequest) -> dict:
        kwargs = {"headers": authenticated_request.auth_headers()}
        payload = authenticated_request.payload
        if payload is None:
            return kwargs
        if authenticated_request.method == HttpMethod.GET:
            if isinstance(payload, dict):
                kwargs["params"] = payload
        else:
            kwargs["json"] = payload
        return kwargs

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def execute(self, authenticated_request: AuthenticatedRequest) -> Outcome:
        self.attempts += 1
        url = self._resolve_url(authenticated_request.destination)
        log_attempt(authenticated_request, transport="http", attempt=self.attempts, url=url)

        client = await self._get_client()
        try:
            response = await client.request(
                authenticated_request.method.value,
                url,
                **self._build_kwargs(authenticated_request),
            )
        except httpx.HTTPError as exc:
            lib_logger.warning(f"Request to {url} failed: {exc!r}")
            return classify_exception(exc, self._expired_statuses)

        kind = classify_status_code(response.status_code, self._expired_statuses)
        if kind is None:
            return Success(payload=self._decode_body(response), status_code=response.status_code)

        lib_logger.debug(f"Request to {url} returned HTTP {response.status_code} ({kind.value})")
        return Failure(kind, detail=response.text[:500], status_code=response.status_code)

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
