# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Type definitions for the authenticated-call pipeline.

This module contains the value types passed between the credential store,
the authenticator, the transport, the refresher and the pipeline itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# =============================================================================
# ENUMS
# =============================================================================


class CredentialRole(str, Enum):
    """Which credential a store slot holds."""

    ACCESS = "access"  # Short-lived, attached to every call
    REFRESH = "refresh"  # Long-lived, only used to obtain a new access credential


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class FailureKind(str, Enum):
    """Classification of a failed call."""

    CREDENTIAL_EXPIRED = "credential_expired"  # Only recoverable kind
    OTHER_ERROR = "other_error"


class CallState(str, Enum):
    """States visited by a single pipeline invocation."""

    INITIAL = "initial"
    REFRESHING = "refreshing"
    RETRYING = "retrying"
    ESCALATED = "escalated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CallState.SUCCEEDED, CallState.FAILED)


# =============================================================================
# REQUEST TYPES
# =============================================================================


@dataclass(frozen=True)
class Request:
    """
    An unauthenticated request.

    Carries no credential; one is attached by the authenticator at dispatch time.
    """

    destination: str
    method: HttpMethod = HttpMethod.GET
    payload: Any = None

    def __post_init__(self):
        if not isinstance(self.method, HttpMethod):
            object.__setattr__(self, "method", HttpMethod(str(self.method).upper()))


@dataclass(frozen=True)
class AuthenticatedRequest:
    """A request plus the access credential snapshot taken when it was dispatched."""

    request: Request
    credential: str

    @property
    def destination(self) -> str:
        return self.request.destination

    @property
    def method(self) -> HttpMethod:
        return self.request.method

    @property
    def payload(self) -> Any:
        return self.request.payload

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.credential}"}


# =============================================================================
# OUTCOME TYPES
# =============================================================================


@dataclass(frozen=True)
class Success:
    payload: Any = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """
    A classified failure.

    `detail` is a human-readable reason; `error` keeps the originating
    exception when the failure came from one.
    """

    kind: FailureKind
    detail: str = ""
    status_code: Optional[int] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_credential_expired(self) -> bool:
        return self.kind == FailureKind.CREDENTIAL_EXPIRED


Outcome = Union[Success, Failure]


# =============================================================================
# TRACE TYPES
# =============================================================================


@dataclass
class CallTrace:
    """
    Record of what one invocation did.

    `states` lists every CallState entered, in order. `credentials` lists the
    access credential attached to each transport attempt.
    """

    request: Request
    states: List[CallState] = field(default_factory=lambda: [CallState.INITIAL])
    credentials: List[str] = field(default_factory=list)
    refreshed: bool = False
    escalated: bool = False

    @property
    def state(self) -> CallState:
        return self.states[-1]

    @property
    def attempts(self) -> int:
        return len(self.credentials)

    def enter(self, state: CallState) -> None:
        self.states.append(state)
