# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

lib_logger = logging.getLogger("auth_pipeline")


class ReauthEscalation(ABC):
    """
    Terminal recovery action once refresh-and-retry cannot recover.

    The pipeline ignores the return value. `escalate` may be a plain method
    or a coroutine; a coroutine is scheduled without being awaited by the
    failing call.
    """

    @abstractmethod
    def escalate(self) -> Any:
        pass


class LoggingEscalation(ReauthEscalation):
    """Records the redirect to the external login page instead of performing it."""

    def __init__(self, login_url: str = ""):
        self.login_url = login_url
        self.escalations = 0

    def escalate(self) -> None:
        self.escalations += 1
        target = self.login_url or "the SSO login page"
        lib_logger.warning(f"Re-authentication required; redirecting to {target}")


class CallbackEscalation(ReauthEscalation):
    def __init__(self, callback: Callable[[], Any]):
        self._callback = callback

    def escalate(self) -> Any:
        return self._callback()

