"""Reassembly of a streamed chat completion.

The :class:`DeltaMerger` folds one :class:`~chatdelta.records.ChunkRecord`
at a time into the turn being built: content text, tool calls keyed by
their ``index``, the finish reason and the latest usage. Tool calls may
arrive interleaved across records; the :class:`ToolCallAccumulator`
keeps one :class:`ToolCallSlot` per index and orders them by index when
the stream ends.

``decode_stream()`` drains ``iter_stream()``. ``iter_stream()`` is the
event-level entry point.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass

from chatdelta.cancellation import CancelToken
from chatdelta.events import (
    CallbackSink,
    StreamCompleteEvent,
    StreamEvent,
    StreamSink,
    TokenEvent,
    UsageEvent,
)
from chatdelta.models import FunctionCall, StreamResult, ToolCall, Usage
from chatdelta.records import ChunkRecord, ToolCallDelta, parse_record
from chatdelta.sse import iter_payloads

logger = logging.getLogger(__name__)


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex}"


@dataclass
class ToolCallSlot:
    """A tool call still being streamed.

    ``id`` and ``name`` keep the first value seen. ``arguments`` is the
    concatenation of every fragment in arrival order.
    """

    id: str | None = None
    name: str | None = None
    arguments: str = ""

    def feed(self, delta: ToolCallDelta) -> None:
        if delta.id is not None and self.id is None:
            self.id = delta.id
        function = delta.function
        if function is None:
            return
        if function.name is not None and self.name is None:
            self.name = function.name
        if function.arguments is not None:
            self.arguments += function.arguments

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.id if self.id is not None else new_call_id(),
            function=FunctionCall(
                name=self.name or "",
                arguments=self.arguments,
            ),
        )


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments."""

    def __init__(self) -> None:
        self._slots: dict[int, ToolCallSlot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def feed(self, delta: ToolCallDelta) -> None:
        # Servers that omit the index are assumed to stream one call.
        index = delta.index if delta.index is not None else 0
        slot = self._slots.get(index)
        if slot is None:
            logger.debug(f"Opened tool call slot {index}")
            slot = self._slots[index] = ToolCallSlot()
        slot.feed(delta)

    def finalize(self) -> list[ToolCall] | None:
        """Return completed tool calls in index order.

        Returns ``None`` when no tool-call delta was ever fed.
        """
        if not self._slots:
            return None
        return [self._slots[i].to_tool_call() for i in sorted(self._slots)]


class DeltaMerger:
    """Accumulates the state of one streamed turn.

    A merger belongs to a single stream and is discarded once
    :meth:`result` has been called.
    """

    def __init__(self) -> None:
        self._content: list[str] = []
        self._tool_calls = ToolCallAccumulator()
        self.finish_reason: str | None = None
        self.usage: Usage | None = None

    @property
    def content(self) -> str:
        return "".join(self._content)

    @property
    def tool_call_count(self) -> int:
        return len(self._tool_calls)

    def feed(self, record: ChunkRecord) -> list[StreamEvent]:
        """Merge one record and return the live events it produced."""
        events: list[StreamEvent] = []

        if record.usage is not None:
            self.usage = record.usage
            events.append(UsageEvent(usage=record.usage))

        choice = record.first_choice
        if choice is None:
            return events

        if choice.finish_reason is not None:
            self.finish_reason = choice.finish_reason

        delta = choice.delta
        if delta is None:
            return events

        if delta.content:
            self._content.append(delta.content)
            events.append(TokenEvent(text=delta.content))

        if delta.tool_calls is not None:
            for tool_call in delta.tool_calls:
                self._tool_calls.feed(tool_call)

        return events

    def result(self) -> StreamResult:
        return StreamResult(
            content=self.content,
            tool_calls=self._tool_calls.finalize(),
            finish_reason=self.finish_reason,
            usage=self.usage,
        )


async def iter_stream(
    lines: AsyncIterable[str | bytes],
    cancel: CancelToken | None = None,
) -> AsyncIterator[StreamEvent]:
    """Decode a stream, yielding events as records are merged.

    Yields a :class:`TokenEvent` per non-empty content fragment and a
    :class:`UsageEvent` per usage object, in arrival order, followed by
    exactly one :class:`StreamCompleteEvent`.

    Raises:
        StreamCancelledError: If *cancel* is triggered.
        StreamDecodeError: If a payload is not a JSON object.
    """
    merger = DeltaMerger()
    async with aclosing(iter_payloads(lines, cancel)) as payloads:
        async for payload in payloads:
            for event in merger.feed(parse_record(payload)):
                yield event
    result = merger.result()
    logger.debug(
        f"Stream complete: {len(result.content)} chars, "
        f"{merger.tool_call_count} tool calls, "
        f"finish_reason={result.finish_reason}"
    )
    yield StreamCompleteEvent(result=result)


async def decode_stream(
    lines: AsyncIterable[str | bytes],
    *,
    cancel: CancelToken | None = None,
    on_token: Callable[[str], None] | None = None,
    on_usage: Callable[[Usage], None] | None = None,
    sink: StreamSink | None = None,
) -> StreamResult:
    """Decode a whole stream into a :class:`StreamResult`.

    Callbacks run in-line on the calling task, in the order the server
    produced the data. Tokens already delivered are not retracted if the
    decode later fails.

    Args:
        lines: Line source of the streamed HTTP response.
        cancel: Optional cancellation token.
        on_token: Called once per content fragment.
        on_usage: Called once per usage object.
        sink: Alternative to the two callbacks.
    """
    if sink is not None and (on_token is not None or on_usage is not None):
        raise ValueError("Pass either sink or on_token/on_usage, not both")
    if sink is None:
        sink = CallbackSink(on_token=on_token, on_usage=on_usage)

    result: StreamResult | None = None
    async with aclosing(iter_stream(lines, cancel)) as events:
        async for event in events:
            if isinstance(event, TokenEvent):
                sink.on_token(event.text)
            elif isinstance(event, UsageEvent):
                sink.on_usage(event.usage)
            elif isinstance(event, StreamCompleteEvent):
                result = event.result
    if result is None:
        raise RuntimeError(
            "iter_stream() ended without emitting StreamCompleteEvent"
        )
    return result
