import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from auth_pipeline.credential_store import CredentialStore
from auth_pipeline.escalation import ReauthEscalation
from auth_pipeline.pipeline import AuthenticatedCallPipeline
from auth_pipeline.refresher import SimulatedRefresher
from auth_pipeline.transport import SimulatedTransport, Transport
from auth_pipeline.types import AuthenticatedRequest, HttpMethod, Outcome, Request


class RecordingEscalation(ReauthEscalation):
    """Counts escalations; optionally raises to exercise the fire-and-forget path."""

    def __init__(self, error: Optional[BaseException] = None):
        self.count = 0
        self._error = error

    def escalate(self) -> None:
        self.count += 1
        if self._error is not None:
            raise self._error


class ScriptedTransport(Transport):
    """Resolves each call to the next scripted outcome (or raises it if it is an exception)."""

    def __init__(self, outcomes, delay: float = 0.0):
        self._outcomes = list(outcomes)
        self.delay = delay
        self.calls: List[AuthenticatedRequest] = []

    async def execute(self, authenticated_request: AuthenticatedRequest) -> Outcome:
        self.calls.append(authenticated_request)
        await asyncio.sleep(self.delay)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def request_obj() -> Request:
    return Request(destination="svc", method=HttpMethod.POST, payload=[1, 2, 3])


@pytest.fixture
def escalation() -> RecordingEscalation:
    return RecordingEscalation()


@pytest.fixture
def make_pipeline(escalation):
    """Builds an in-memory pipeline with zero latency unless told otherwise."""

    def _make(
        access: str = "invalidToken",
        refresh: str = "validRefreshToken",
        transport: Optional[Transport] = None,
        refresher_factory=None,
        latency: float = 0.0,
        **kwargs,
    ) -> AuthenticatedCallPipeline:
        store = CredentialStore(access, refresh)
        transport = transport or SimulatedTransport(latency=latency)
        if refresher_factory is None:
            refresher = SimulatedRefresher(store, latency=latency)
        else:
            refresher = refresher_factory(store)
        return AuthenticatedCallPipeline(store, transport, refresher, escalation, **kwargs)

    return _make
