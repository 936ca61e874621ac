# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
from typing import Optional

import httpx

from .audit_logger import setup_audit_logger
from .config import MODE_HTTP, PipelineSettings, load_settings
from .credential_store import CredentialStore
from .escalation import LoggingEscalation, ReauthEscalation
from .pipeline import AuthenticatedCallPipeline
from .refresher import (
    HttpCredentialRefresher,
    SimulatedRefresher,
    SingleFlightRefresher,
)
from .transport import HttpTransport, SimulatedTransport

lib_logger = logging.getLogger("auth_pipeline")


def build_pipeline(
    settings: Optional[PipelineSettings] = None,
    store: Optional[CredentialStore] = None,
    escalation: Optional[ReauthEscalation] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthenticatedCallPipeline:
    """
    Wires a pipeline from settings.

    In simulated mode the transport and refresher are in-memory endpoints with
    `latency_seconds` of delay. In http mode both talk to real endpoints,
    sharing `http_client` when one is given.
    """
    settings = settings or load_settings()
    store = store or CredentialStore.from_settings(settings)
    escalation = escalation or LoggingEscalation(settings.login_url)

    if settings.audit_log_dir:
        setup_audit_logger(settings.audit_log_dir)

    if settings.mode == MODE_HTTP:
        transport = HttpTransport(
            base_url=settings.api_url,
            shared_client=http_client,
            expired_statuses=settings.expired_statuses,
        )
        refresher = HttpCredentialRefresher(
            store,
            settings.refresh_url,
            shared_client=http_client,
            expired_statuses=settings.expired_statuses,
        )
    else:
        transport = SimulatedTransport(latency=settings.latency_seconds)
        refresher = SimulatedRefresher(store, latency=settings.latency_seconds)

    if settings.single_flight_refresh:
        refresher = SingleFlightRefresher(refresher)

    lib_logger.debug(
        f"Built {settings.mode} pipeline (single-flight refresh: {settings.single_flight_refresh})"
    )
    return AuthenticatedCallPipeline(
        store,
        transport,
        refresher,
        escalation,
        operation_timeout=settings.operation_timeout,
        escalate_on_any_refresh_failure=settings.escalate_on_any_refresh_failure,
    )
