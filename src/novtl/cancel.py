"""Cooperative cancellation signal shared by engine and adapters."""

import asyncio
from typing import Optional

from novtl.errors import AbortedByUser


class CancelToken:
    """A single, one-way cancellation signal.

    Checked at well-defined points (before each chunk, before each network
    call, on every streamed event). Once set it stays set.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`AbortedByUser` if the signal is set."""
        if self._event.is_set():
            raise AbortedByUser()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` but wake and abort as soon as the token is cancelled."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise AbortedByUser()


def check(cancel: Optional[CancelToken]) -> None:
    """Raise if an optional token is cancelled."""
    if cancel is not None:
        cancel.raise_if_cancelled()
