"""Server-Sent Events reader for chat completion streams."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator

from chatdelta.cancellation import CancelToken

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

_EOF = object()


async def _next_line(iterator: AsyncIterator[str | bytes]):
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _EOF


async def _read_line(
    iterator: AsyncIterator[str | bytes],
    cancel: CancelToken,
):
    """Read one line, abandoning the read as soon as *cancel* fires."""
    read = asyncio.ensure_future(_next_line(iterator))
    stop = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait(
            {read, stop}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        leftover = [task for task in (read, stop) if not task.done()]
        for task in leftover:
            task.cancel()
        if leftover:
            await asyncio.wait(leftover)
    if cancel.cancelled:
        if not read.cancelled():
            read.exception()
        cancel.raise_if_cancelled()
    return read.result()


async def iter_payloads(
    lines: AsyncIterable[str | bytes],
    cancel: CancelToken | None = None,
) -> AsyncIterator[str]:
    """Yield the payload of every ``data:`` line until ``[DONE]``.

    Blank lines and any other SSE field (comments, ``event:``, ``id:``)
    are skipped. Iteration stops at the ``[DONE]`` sentinel even if the
    transport still has bytes, or when *lines* is exhausted. Payloads
    are not validated here. The line iterator is closed on exit.

    Args:
        lines: The transport, one line per item. ``bytes`` are decoded
            as UTF-8.
        cancel: Checked before every line read, and raced against a
            read that is waiting for the server.

    Raises:
        StreamCancelledError: If *cancel* is triggered.
    """
    iterator = aiter(lines)
    try:
        while True:
            if cancel is None:
                line = await _next_line(iterator)
            else:
                cancel.raise_if_cancelled()
                line = await _read_line(iterator, cancel)
            if line is _EOF:
                return
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            line = line.rstrip("\r\n")
            if not line or not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                logger.debug("Stream finished with [DONE]")
                return
            yield payload
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
