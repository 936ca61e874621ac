# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Process-wide configuration for the authenticated-call pipeline.

Settings are read from environment variables (optionally seeded from a
`.env` file). Defaults reproduce the demo session: a stale access credential
and a valid refresh credential against the simulated endpoint.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from .errors import DEFAULT_EXPIRED_STATUSES, ConfigurationError

ENV_PREFIX = "AUTH_PIPELINE"

MODE_SIMULATED = "simulated"
MODE_HTTP = "http"
VALID_MODES = (MODE_SIMULATED, MODE_HTTP)

DEFAULT_ACCESS_TOKEN = "invalidToken"
DEFAULT_REFRESH_TOKEN = "validRefreshToken"
DEFAULT_API_URL = "https://example.com"
DEFAULT_LATENCY_SECONDS = 2.0


def _env(name: str) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}_{name}")


def parse_bool_env(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = (_env(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}_{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{ENV_PREFIX}_{name} must not be negative")
    return value


def parse_status_list(raw: str) -> FrozenSet[int]:
    statuses = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            statuses.add(int(part))
        except ValueError:
            raise ConfigurationError(f"Invalid HTTP status in expired-status list: {part!r}")
    if not statuses:
        raise ConfigurationError("Expired-status list must contain at least one status")
    return frozenset(statuses)


@dataclass(frozen=True)
class PipelineSettings:
    access_token: str = DEFAULT_ACCESS_TOKEN
    refresh_token: str = DEFAULT_REFRESH_TOKEN
    mode: str = MODE_SIMULATED
    api_url: str = DEFAULT_API_URL
    refresh_url: str = ""
    login_url: str = ""
    latency_seconds: float = DEFAULT_LATENCY_SECONDS
    operation_timeout: Optional[float] = None  # None = unbounded
    single_flight_refresh: bool = False
    escalate_on_any_refresh_failure: bool = False
    expired_statuses: FrozenSet[int] = field(default=DEFAULT_EXPIRED_STATUSES)
    audit_log_dir: Optional[str] = None

    def validate(self) -> "PipelineSettings":
        if not self.access_token or not self.refresh_token:
            raise ConfigurationError("Seed access and refresh credentials must be non-empty")
        if self.mode not in VALID_MODES:
            raise ConfigurationError(
                f"{ENV_PREFIX}_MODE must be one of {', '.join(VALID_MODES)}, got {self.mode!r}"
            )
        if self.mode == MODE_HTTP and not self.refresh_url:
            raise ConfigurationError(f"{ENV_PREFIX}_REFRESH_URL is required in http mode")
        if self.operation_timeout is not None and self.operation_timeout <= 0:
            raise ConfigurationError(f"{ENV_PREFIX}_OPERATION_TIMEOUT must be positive")
        return self


def load_settings(dotenv_path: Optional[str] = None) -> PipelineSettings:
    """Builds settings from the environment, loading `.env` first if present."""
    load_dotenv(dotenv_path)

    raw_statuses = (_env("EXPIRED_STATUSES") or "").strip()
    settings = PipelineSettings(
        access_token=(_env("ACCESS_TOKEN") or "").strip() or DEFAULT_ACCESS_TOKEN,
        refresh_token=(_env("REFRESH_TOKEN") or "").strip() or DEFAULT_REFRESH_TOKEN,
        mode=(_env("MODE") or MODE_SIMULATED).strip().lower(),
        api_url=(_env("API_URL") or "").strip() or DEFAULT_API_URL,
        refresh_url=(_env("REFRESH_URL") or "").strip(),
        login_url=(_env("LOGIN_URL") or "").strip(),
        latency_seconds=parse_float_env("LATENCY_SECONDS", DEFAULT_LATENCY_SECONDS),
        operation_timeout=parse_float_env("OPERATION_TIMEOUT", None),
        single_flight_refresh=parse_bool_env("SINGLE_FLIGHT_REFRESH", False),
        escalate_on_any_refresh_failure=parse_bool_env(
            "ESCALATE_ON_ANY_REFRESH_FAILURE", False
        ),
        expired_statuses=(
            parse_status_list(raw_statuses) if raw_statuses else DEFAULT_EXPIRED_STATUSES
        ),
        audit_log_dir=(_env("AUDIT_LOG_DIR") or "").strip() or None,
    )
    return settings.validate()
