# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import asyncio
from typing import Iterable, Optional

import httpx

from .types import Failure, FailureKind

DEFAULT_EXPIRED_STATUSES = frozenset({401, 403})


class ConfigurationError(ValueError):
    """Raised when pipeline settings are missing or malformed."""


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def classify_status_code(
    status_code: int, expired_statuses: Optional[Iterable[int]] = None
) -> Optional[FailureKind]:
    """
    Maps a response status to a failure kind.

    Returns None for 2xx. Statuses in `expired_statuses` mean the attached
    access credential was rejected; everything else is an ordinary error.
    """
    if is_success_status(status_code):
        return None
    expired = (
        DEFAULT_EXPIRED_STATUSES if expired_statuses is None else frozenset(expired_statuses)
    )
    if status_code in expired:
        return FailureKind.CREDENTIAL_EXPIRED
    return FailureKind.OTHER_ERROR


def is_timeout_error(e: BaseException) -> bool:
    return isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError))


def classify_exception(
    e: BaseException, expired_statuses: Optional[Iterable[int]] = None
) -> Failure:
    """
    Converts an exception raised during a network operation into a Failure.

    Only an HTTP status error can yield CREDENTIAL_EXPIRED. Timeouts and
    connection errors are never retried by the pipeline.
    """
    if isinstance(e, httpx.HTTPStatusError):
        status_code = e.response.status_code
        kind = classify_status_code(status_code, expired_statuses) or FailureKind.OTHER_ERROR
        return Failure(kind, detail=f"HTTP {status_code}", status_code=status_code, error=e)
    if is_timeout_error(e):
        return Failure(FailureKind.OTHER_ERROR, detail="timeout", error=e)
    if isinstance(e, httpx.RequestError):
        return Failure(FailureKind.OTHER_ERROR, detail=f"network error: {e}", error=e)
    return Failure(FailureKind.OTHER_ERROR, detail=f"{type(e).__name__}: {e}", error=e)
