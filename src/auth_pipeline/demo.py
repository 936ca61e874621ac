# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Scripted session against the pipeline.

Each action stands in for one of the controls a user would press:
make a request, invalidate the access credential, invalidate the refresh
credential, or restore a valid refresh credential. `burst` fires two
overlapping requests to show that only the latest result is delivered.
"""

import asyncio
from typing import Iterable, List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from .credential_store import CredentialStore
from .latest import LatestCallGate
from .pipeline import AuthenticatedCallPipeline
from .refresher import ACCEPTED_REFRESH_TOKEN
from .types import CredentialRole, HttpMethod, Outcome, Request
from .utils import mask_credential


ACTIONS = ("request", "burst", "invalidate-access", "invalidate-refresh", "restore-refresh")
DEFAULT_ACTIONS = (
    "request",
    "invalidate-access",
    "request",
    "invalidate-refresh",
    "invalidate-access",
    "request",
)


def describe(outcome: Optional[Outcome]) -> str:
    if outcome is None:
        return "discarded (superseded)"
    if outcome.ok:
        return f"value: {outcome.payload!r}"
    return f"error: {outcome.kind.value} {outcome.detail}".rstrip()


def build_request(destination: str) -> Request:
    return Request(destination=destination, method=HttpMethod.POST, payload={"params": [1, 2, 3]})


async def run_session(
    pipeline: AuthenticatedCallPipeline,
    actions: Iterable[str] = DEFAULT_ACTIONS,
    destination: str = "https://example.com",
    console: Optional[Console] = None,
) -> List[Tuple[str, Optional[Outcome]]]:
    """
    Plays the actions in order and returns (action, outcome) pairs.

    Store-only actions pair with None. A burst contributes one entry per
    request, the superseded one carrying None.
    """
    console = console or Console()
    store: CredentialStore = pipeline.store
    delivered: List[Outcome] = []
    gate = LatestCallGate(pipeline, observer=delivered.append)
    results: List[Tuple[str, Optional[Outcome]]] = []

    for action in actions:
        if action == "request":
            outcome = await gate.submit(build_request(destination))
            console.print(f"[bold]Component got[/bold] {describe(outcome)}")
            results.append((action, outcome))
        elif action == "burst":
            outcomes = await asyncio.gather(
                gate.submit(build_request(destination)),
                gate.submit(build_request(destination)),
            )
            for outcome in outcomes:
                console.print(f"[bold]Component got[/bold] {describe(outcome)}")
                results.append((action, outcome))
        elif action == "invalidate-access":
            store.invalidate(CredentialRole.ACCESS)
            results.append((action, None))
        elif action == "invalidate-refresh":
            store.invalidate(CredentialRole.REFRESH)
            results.append((action, None))
        elif action == "restore-refresh":
            store.set(CredentialRole.REFRESH, ACCEPTED_REFRESH_TOKEN)
            results.append((action, None))
        else:
            raise ValueError(f"Unknown action {action!r}; expected one of {', '.join(ACTIONS)}")

    console.print(render_summary(pipeline))
    return results


def render_summary(pipeline: AuthenticatedCallPipeline) -> Table:
    table = Table(title="Authenticated call pipeline")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    for name, value in pipeline.stats.snapshot().items():
        table.add_row(name, str(value))
    snapshot = pipeline.store.snapshot()
    table.add_row("access credential", mask_credential(snapshot[CredentialRole.ACCESS]))
    table.add_row("refresh credential", mask_credential(snapshot[CredentialRole.REFRESH]))
    return table
