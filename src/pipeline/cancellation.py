# src/pipeline/cancellation.py — v1
"""Structured cancellation for completion attempts.

A CancellationToken is created per attempt, owned by the coordinator and
passed down to every awaitable that may suspend (the generation call). The
coordinator checks it after each await; ``run_cancellable`` additionally
aborts the in-flight task as soon as the token fires.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """The attempt owning this operation was cancelled or superseded."""


class CancellationToken:
    """One-shot cancellation signal backed by an asyncio.Event."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self._reason or "cancelled")


@dataclass
class CompletionAttempt:
    """One user-triggered completion cycle."""

    prefix_text: str
    suffix_text: str
    language: str
    attempt_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


async def run_cancellable(awaitable: Awaitable[T], token: CancellationToken) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    Raises:
        OperationCancelled: If the token was cancelled before or while waiting.
            The underlying task is cancelled and awaited.
    """
    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelled(token.reason or "cancelled")

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if not waiter.done():
            waiter.cancel()

    if task.done():
        if token.cancelled:
            # A result that raced the cancel signal is discarded.
            if not task.cancelled():
                task.exception()
            raise OperationCancelled(token.reason or "cancelled")
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise OperationCancelled(token.reason or "cancelled")
