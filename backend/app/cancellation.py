"""Cooperative cancellation for in-flight session generation."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import GenerationCancelledError

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation flag shared between the orchestrator and a request.

    Cancellation is cooperative: holders check ``cancelled`` at the point where a
    result would be committed, and ``race`` abandons an awaitable as soon as the
    token fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "superseded") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise GenerationCancelledError(self._reason or "cancelled")

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first, then cancel it and raise."""
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work not in done:
            work.cancel()
            try:
                await work
            except (asyncio.CancelledError, Exception):  # noqa: BLE001
                pass
            self.raise_if_cancelled()
        return work.result()


__all__ = ["CancellationToken"]
