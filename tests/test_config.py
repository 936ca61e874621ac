import pytest

from auth_pipeline.config import (
    MODE_HTTP,
    MODE_SIMULATED,
    PipelineSettings,
    load_settings,
)
from auth_pipeline.errors import ConfigurationError

ENV_VARS = (
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "MODE",
    "API_URL",
    "REFRESH_URL",
    "LOGIN_URL",
    "LATENCY_SECONDS",
    "OPERATION_TIMEOUT",
    "SINGLE_FLIGHT_REFRESH",
    "ESCALATE_ON_ANY_REFRESH_FAILURE",
    "EXPIRED_STATUSES",
    "AUDIT_LOG_DIR",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(f"AUTH_PIPELINE_{name}", raising=False)
    return tmp_path / "missing.env"


def test_defaults_reproduce_demo_session(clean_env) -> None:
    settings = load_settings(clean_env)

    assert settings == PipelineSettings()
    assert settings.access_token == "invalidToken"
    assert settings.refresh_token == "validRefreshToken"
    assert settings.mode == MODE_SIMULATED
    assert settings.latency_seconds == 2.0
    assert settings.operation_timeout is None
    assert settings.expired_statuses == frozenset({401, 403})
    assert settings.single_flight_refresh is False


def test_environment_overrides(clean_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_PIPELINE_ACCESS_TOKEN", "seed-access")
    monkeypatch.setenv("AUTH_PIPELINE_REFRESH_TOKEN", "seed-refresh")
    monkeypatch.setenv("AUTH_PIPELINE_MODE", "HTTP")
    monkeypatch.setenv("AUTH_PIPELINE_REFRESH_URL", "https://auth.example.com/token")
    monkeypatch.setenv("AUTH_PIPELINE_LATENCY_SECONDS", "0")
    monkeypatch.setenv("AUTH_PIPELINE_OPERATION_TIMEOUT", "7.5")
    monkeypatch.setenv("AUTH_PIPELINE_SINGLE_FLIGHT_REFRESH", "yes")
    monkeypatch.setenv("AUTH_PIPELINE_ESCALATE_ON_ANY_REFRESH_FAILURE", "on")
    monkeypatch.setenv("AUTH_PIPELINE_EXPIRED_STATUSES", "400, 401")

    settings = load_settings(clean_env)

    assert settings.access_token == "seed-access"
    assert settings.refresh_token == "seed-refresh"
    assert settings.mode == MODE_HTTP
    assert settings.latency_seconds == 0.0
    assert settings.operation_timeout == 7.5
    assert settings.single_flight_refresh is True
    assert settings.escalate_on_any_refresh_failure is True
    assert settings.expired_statuses == frozenset({400, 401})


def test_dotenv_file_is_loaded(clean_env, tmp_path) -> None:
    dotenv_file = tmp_path / ".env"
    dotenv_file.write_text("AUTH_PIPELINE_ACCESS_TOKEN=from-dotenv\n")

    settings = load_settings(dotenv_file)

    assert settings.access_token == "from-dotenv"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("MODE", "grpc"),
        ("LATENCY_SECONDS", "fast"),
        ("LATENCY_SECONDS", "-1"),
        ("OPERATION_TIMEOUT", "0"),
        ("EXPIRED_STATUSES", "401,abc"),
    ],
)
def test_invalid_values_raise(clean_env, monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(f"AUTH_PIPELINE_{name}", value)

    with pytest.raises(ConfigurationError):
        load_settings(clean_env)


def test_http_mode_requires_refresh_url(clean_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_PIPELINE_MODE", "http")

    with pytest.raises(ConfigurationError, match="REFRESH_URL"):
        load_settings(clean_env)
