"""Decode streamed chat completions into a single assistant turn."""

from chatdelta.cancellation import CancelToken
from chatdelta.errors import (
    ChatDeltaError,
    StreamCancelledError,
    StreamDecodeError,
)
from chatdelta.events import (
    CallbackSink,
    StreamCompleteEvent,
    StreamEvent,
    StreamSink,
    TokenEvent,
    UsageEvent,
)
from chatdelta.instrumentation import instrument, uninstrument
from chatdelta.models import FunctionCall, StreamResult, ToolCall, Usage
from chatdelta.provider import ChatRequest, OpenAICompatibleProvider
from chatdelta.sse import iter_payloads
from chatdelta.streaming import (
    DeltaMerger,
    ToolCallAccumulator,
    ToolCallSlot,
    decode_stream,
    iter_stream,
)

__all__ = [
    "CallbackSink",
    "CancelToken",
    "ChatDeltaError",
    "ChatRequest",
    "DeltaMerger",
    "FunctionCall",
    "OpenAICompatibleProvider",
    "StreamCancelledError",
    "StreamCompleteEvent",
    "StreamDecodeError",
    "StreamEvent",
    "StreamResult",
    "StreamSink",
    "TokenEvent",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolCallSlot",
    "Usage",
    "UsageEvent",
    "decode_stream",
    "instrument",
    "iter_payloads",
    "iter_stream",
    "uninstrument",
]
