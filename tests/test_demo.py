import io

import httpx
import pytest
from rich.console import Console

from auth_pipeline.config import PipelineSettings
from auth_pipeline.demo import DEFAULT_ACTIONS, run_session
from auth_pipeline.escalation import LoggingEscalation
from auth_pipeline.factory import build_pipeline
from auth_pipeline.refresher import HttpCredentialRefresher, SingleFlightRefresher
from auth_pipeline.transport import HttpTransport, SimulatedTransport
from auth_pipeline.types import CredentialRole, FailureKind


def _console() -> Console:
    return Console(file=io.StringIO(), width=100)


@pytest.mark.asyncio
async def test_default_session_recovers_then_escalates(escalation) -> None:
    pipeline = build_pipeline(PipelineSettings(latency_seconds=0), escalation=escalation)
    console = _console()

    results = await run_session(pipeline, DEFAULT_ACTIONS, console=console)

    outcomes = [outcome for action, outcome in results if action == "request"]
    assert outcomes[0].ok and outcomes[1].ok
    assert outcomes[2].kind == FailureKind.CREDENTIAL_EXPIRED
    assert escalation.count == 1
    assert pipeline.stats.refreshes == 3

    output = console.file.getvalue()
    assert "Component got" in output
    assert "credential_expired" in output


@pytest.mark.asyncio
async def test_burst_delivers_only_latest(escalation) -> None:
    pipeline = build_pipeline(
        PipelineSettings(access_token="validToken", latency_seconds=0.01), escalation=escalation
    )

    results = await run_session(pipeline, ["burst"], console=_console())

    assert [action for action, _ in results] == ["burst", "burst"]
    assert results[0][1] is None
    assert results[1][1].ok


@pytest.mark.asyncio
async def test_restore_refresh_action(escalation) -> None:
    pipeline = build_pipeline(PipelineSettings(latency_seconds=0), escalation=escalation)

    await run_session(
        pipeline, ["invalidate-refresh", "restore-refresh", "request"], console=_console()
    )

    assert pipeline.store.get(CredentialRole.REFRESH) == "validRefreshToken"
    assert escalation.count == 0


@pytest.mark.asyncio
async def test_unknown_action_raises(escalation) -> None:
    pipeline = build_pipeline(PipelineSettings(latency_seconds=0), escalation=escalation)

    with pytest.raises(ValueError, match="Unknown action"):
        await run_session(pipeline, ["press-every-button"], console=_console())


def test_build_pipeline_simulated_defaults() -> None:
    pipeline = build_pipeline(PipelineSettings(latency_seconds=0, login_url="https://sso.example.com"))

    assert isinstance(pipeline.transport, SimulatedTransport)
    assert isinstance(pipeline.escalation, LoggingEscalation)
    assert pipeline.escalation.login_url == "https://sso.example.com"
    assert pipeline.store.get(CredentialRole.ACCESS) == "invalidToken"


@pytest.mark.asyncio
async def test_build_pipeline_http_mode_end_to_end(escalation) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "issued-access"})
        if request.headers.get("Authorization") == "Bearer issued-access":
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(401)

    settings = PipelineSettings(
        access_token="expired-access",
        mode="http",
        api_url="https://api.example.com",
        refresh_url="https://auth.example.com/token",
        single_flight_refresh=True,
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        pipeline = build_pipeline(settings, escalation=escalation, http_client=client)
        results = await run_session(pipeline, ["request"], console=_console())

    assert isinstance(pipeline.transport, HttpTransport)
    assert isinstance(pipeline.refresher, SingleFlightRefresher)
    assert isinstance(pipeline.refresher.inner, HttpCredentialRefresher)
    assert results[0][1].payload == {"ok": True}
    assert pipeline.store.get(CredentialRole.ACCESS) == "issued-access"
    assert escalation.count == 0
