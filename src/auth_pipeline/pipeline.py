# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Authenticated call execution with refresh-and-retry-once recovery.

Each invocation runs a small state machine:

    INITIAL --expired--> REFRESHING --ok--> RETRYING --expired--> ESCALATED
       |                     |                  |
       +--success/other------+--failure---------+--success/other--> SUCCEEDED / FAILED

At most one refresh and one retry happen per invocation; the policy never
loops. Only CREDENTIAL_EXPIRED triggers recovery. Every other failure is
returned to the caller unchanged.
"""

import asyncio
import inspect
import logging
import threading
from typing import Awaitable, Dict, Optional, Set, Tuple, Union

from .authenticator import RequestAuthenticator
from .credential_store import CredentialStore
from .errors import classify_exception
from .escalation import ReauthEscalation
from .refresher import CredentialRefresher, SingleFlightRefresher
from .transport import Transport
from .types import CallState, CallTrace, Outcome, Request

lib_logger = logging.getLogger("auth_pipeline")


class PipelineStats:
    """Thread-safe counters across all invocations of one pipeline."""

    FIELDS = (
        "invocations",
        "attempts",
        "refreshes",
        "retries",
        "escalations",
        "successes",
        "failures",
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {name: 0 for name in self.FIELDS}

    def increment(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def __getattr__(self, name: str) -> int:
        if name in PipelineStats.FIELDS:
            with self._lock:
                return self._counts[name]
        raise AttributeError(name)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


class AuthenticatedCallPipeline:
    """
    Authenticate -> execute -> [refresh -> re-authenticate -> execute].

    Args:
        store: Shared credential store
        transport: Executes authenticated requests
        refresher: Obtains a new access credential (plain or single-flight)
        escalation: Notified, fire-and-forget, when recovery is impossible
        operation_timeout: Upper bound in seconds on each network operation;
            a timeout is an OTHER_ERROR and is never retried
        escalate_on_any_refresh_failure: Also escalate when the refresh fails
            with OTHER_ERROR (by default only a rejected refresh credential
            escalates)
    """

    def __init__(
        self,
        store: CredentialStore,
        transport: Transport,
        refresher: Union[CredentialRefresher, SingleFlightRefresher],
        escalation: ReauthEscalation,
        authenticator: Optional[RequestAuthenticator] = None,
        operation_timeout: Optional[float] = None,
        escalate_on_any_refresh_failure: bool = False,
    ):
        self.store = store
        self.transport = transport
        self.refresher = refresher
        self.escalation = escalation
        self.authenticator = authenticator or RequestAuthenticator(store)
        self.operation_timeout = operation_timeout
        self.escalate_on_any_refresh_failure = escalate_on_any_refresh_failure
        self.stats = PipelineStats()
        self._background: Set[asyncio.Future] = set()
        self._background_lock = threading.Lock()

    async def invoke(self, request: Request) -> Outcome:
        outcome, _ = await self.invoke_traced(request)
        return outcome

    def invoke_sync(self, request: Request) -> Outcome:
        """
        Runs one invocation on a fresh event loop (for callers on plain threads).

        Escalations scheduled by the call are awaited before the loop closes.
        """

        async def _invoke_and_drain() -> Outcome:
            outcome = await self.invoke(request)
            await self.drain()
            return outcome

        return asyncio.run(_invoke_and_drain())

    async def invoke_traced(self, request: Request) -> Tuple[Outcome, CallTrace]:
        self.stats.increment("invocations")
        trace = CallTrace(request=request)

        outcome = await self._attempt(trace)
        if outcome.ok or not outcome.is_credential_expired:
            return self._finish(trace, outcome)

        self._transition(trace, CallState.REFRESHING)
        self.stats.increment("refreshes")
        trace.refreshed = True
        refresh_outcome = await self._bounded(self.refresher.refresh(), "refresh")
        if not refresh_outcome.ok:
            if refresh_outcome.is_credential_expired or self.escalate_on_any_refresh_failure:
                self._escalate(trace)
            return self._finish(trace, refresh_outcome)

        self._transition(trace, CallState.RETRYING)
        self.stats.increment("retries")
        outcome = await self._attempt(trace)
        if not outcome.ok and outcome.is_credential_expired:
            self._escalate(trace)
        return self._finish(trace, outcome)

    async def _attempt(self, trace: CallTrace) -> Outcome:
        # Authenticate at dispatch time, never earlier.
        authenticated = self.authenticator.authenticate(trace.request)
        trace.credentials.append(authenticated.credential)
        self.stats.increment("attempts")
        return await self._bounded(self.transport.execute(authenticated), "transport")

    async def _bounded(self, operation: Awaitable[Outcome], name: str) -> Outcome:
        try:
            if self.operation_timeout is None:
                return await operation
            return await asyncio.wait_for(operation, timeout=self.operation_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            lib_logger.error(f"{name.capitalize()} operation raised instead of resolving: {exc!r}")
            return classify_exception(exc)

    def _transition(self, trace: CallTrace, state: CallState) -> None:
        lib_logger.debug(
            f"{trace.request.method.value} {trace.request.destination}: "
            f"{trace.state.value} -> {state.value}"
        )
        trace.enter(state)

    def _finish(self, trace: CallTrace, outcome: Outcome) -> Tuple[Outcome, CallTrace]:
        if outcome.ok:
            self.stats.increment("successes")
            self._transition(trace, CallState.SUCCEEDED)
        else:
            self.stats.increment("failures")
            self._transition(trace, CallState.FAILED)
        return outcome, trace

    def _escalate(self, trace: CallTrace) -> None:
        self._transition(trace, CallState.ESCALATED)
        trace.escalated = True
        self.stats.increment("escalations")
        try:
            result = self.escalation.escalate()
        except Exception as exc:
            lib_logger.error(f"Re-authentication escalation failed: {exc!r}")
            return
        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            with self._background_lock:
                self._background.add(future)
            future.add_done_callback(self._escalation_done)

    def _escalation_done(self, future: asyncio.Future) -> None:
        with self._background_lock:
            self._background.discard(future)
        if future.cancelled():
            lib_logger.warning("Re-authentication escalation was cancelled before it completed")
            return
        exc = future.exception()
        if exc is not None:
            lib_logger.error(f"Re-authentication escalation failed: {exc!r}")

    async def drain(self) -> None:
        """Waits for asynchronous escalations scheduled on the running loop to settle."""
        loop = asyncio.get_running_loop()
        with self._background_lock:
            pending = [future for future in self._background if future.get_loop() is loop]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
