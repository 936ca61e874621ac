# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
import threading
from typing import Callable, Optional

from .pipeline import AuthenticatedCallPipeline
from .types import Outcome, Request

lib_logger = logging.getLogger("auth_pipeline")


class LatestCallGate:
    """
    Latest-wins delivery for one observer.

    Every submission takes a new generation number. When a call completes,
    its outcome is delivered only if no newer submission has started in the
    meantime; older outcomes are discarded. Superseded calls are not
    cancelled, they run to completion and their result is dropped.
    """

    def __init__(
        self,
        pipeline: AuthenticatedCallPipeline,
        observer: Optional[Callable[[Outcome], None]] = None,
    ):
        self.pipeline = pipeline
        self.observer = observer
        self._generation = 0
        self._lock = threading.Lock()
        self.discarded = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    async def submit(self, request: Request) -> Optional[Outcome]:
        """
        Runs the request through the pipeline.

        Returns the outcome if this is still the latest submission when it
        completes, otherwise None.
        """
        generation = self._next_generation()
        outcome = await self.pipeline.invoke(request)

        if not self._is_current(generation):
            with self._lock:
                self.discarded += 1
            lib_logger.debug(
                f"Discarding superseded result for {request.destination} "
                f"(generation {generation}, latest {self._generation})"
            )
            return None

        if self.observer is not None:
            self.observer(outcome)
        return outcome
