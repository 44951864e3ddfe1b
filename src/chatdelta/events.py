"""Events emitted while a stream is being decoded, and their sinks."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from chatdelta.models import StreamResult, Usage


@dataclass
class StreamEvent:
    """Base for all decode events."""


@dataclass
class TokenEvent(StreamEvent):
    """One content fragment, exactly as it arrived."""

    text: str = ""


@dataclass
class UsageEvent(StreamEvent):
    usage: Usage | None = None


@dataclass
class StreamCompleteEvent(StreamEvent):
    """Final event, always the last one yielded."""

    result: StreamResult | None = None


class StreamSink(Protocol):
    """Receives live progress during a decode.

    Both methods run synchronously on the decoding task. A sink that
    blocks stalls the decode.
    """

    def on_token(self, text: str) -> None: ...

    def on_usage(self, usage: Usage) -> None: ...


class CallbackSink:
    """StreamSink built from two optional callables."""

    def __init__(
        self,
        on_token: Callable[[str], None] | None = None,
        on_usage: Callable[[Usage], None] | None = None,
    ):
        self._on_token = on_token
        self._on_usage = on_usage

    def on_token(self, text: str) -> None:
        if self._on_token is not None:
            self._on_token(text)

    def on_usage(self, usage: Usage) -> None:
        if self._on_usage is not None:
            self._on_usage(usage)
