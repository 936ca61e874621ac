# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .authenticator import RequestAuthenticator
from .config import PipelineSettings, load_settings
from .credential_store import CredentialStore
from .errors import ConfigurationError, classify_exception, classify_status_code
from .escalation import CallbackEscalation, LoggingEscalation, ReauthEscalation
from .factory import build_pipeline
from .latest import LatestCallGate
from .pipeline import AuthenticatedCallPipeline, PipelineStats
from .refresher import (
    CredentialRefresher,
    HttpCredentialRefresher,
    SimulatedRefresher,
    SingleFlightRefresher,
)
from .transport import HttpTransport, SimulatedTransport, Transport
from .types import (
    AuthenticatedRequest,
    CallState,
    CallTrace,
    CredentialRole,
    Failure,
    FailureKind,
    HttpMethod,
    Outcome,
    Request,
    Success,
)

__all__ = [
    "AuthenticatedCallPipeline",
    "PipelineStats",
    "LatestCallGate",
    "build_pipeline",
    # Components
    "CredentialStore",
    "RequestAuthenticator",
    "Transport",
    "SimulatedTransport",
    "HttpTransport",
    "CredentialRefresher",
    "SimulatedRefresher",
    "HttpCredentialRefresher",
    "SingleFlightRefresher",
    "ReauthEscalation",
    "LoggingEscalation",
    "CallbackEscalation",
    # Types
    "AuthenticatedRequest",
    "CallState",
    "CallTrace",
    "CredentialRole",
    "Failure",
    "FailureKind",
    "HttpMethod",
    "Outcome",
    "Request",
    "Success",
    # Config and errors
    "PipelineSettings",
    "load_settings",
    "ConfigurationError",
    "classify_exception",
    "classify_status_code",
]
