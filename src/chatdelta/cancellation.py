from __future__ import annotations

import asyncio

from chatdelta.errors import StreamCancelledError


class CancelToken:
    """Cooperative cancellation signal for a single decode.

    The event reader calls :meth:`raise_if_cancelled` before every line
    read, so a cancel takes effect at the next line boundary.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise StreamCancelledError()
