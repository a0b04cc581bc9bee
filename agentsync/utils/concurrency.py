"""Helpers for concurrent fan-out over independent remote calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any


async def gather_settled(awaitables: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await everything, returning results and exceptions in input order.

    In-flight calls are never abandoned: the list is only returned once every
    awaitable has finished.
    """
    return await asyncio.gather(*awaitables, return_exceptions=True)


def failures_of(outcomes: list[Any]) -> list[BaseException]:
    return [outcome for outcome in outcomes if isinstance(outcome, BaseException)]


async def gather_all_or_raise(awaitables: Iterable[Awaitable[Any]]) -> list[Any]:
    """Like gather_settled, but re-raise the first failure once all have settled."""
    outcomes = await gather_settled(awaitables)
    failures = failures_of(outcomes)
    if failures:
        raise failures[0]
    return outcomes
