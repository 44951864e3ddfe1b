import asyncio
import json

import pytest


# ---------------------------------------------------------------------------
# Wire record builders (mirror the chat.completion.chunk shape)
# ---------------------------------------------------------------------------

def content_record(text: str) -> dict:
    return {
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}],
    }


def tool_call_record(
    index: int | None = 0,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> dict:
    """Record carrying a single tool-call delta.

    Fields left as ``None`` are omitted from the wire object.
    """
    entry: dict = {}
    if index is not None:
        entry["index"] = index
    if call_id is not None:
        entry["id"] = call_id
        entry["type"] = "function"
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        entry["function"] = function
    return {"choices": [{"index": 0, "delta": {"tool_calls": [entry]}}]}


def finish_record(reason: str) -> dict:
    return {"choices": [{"index": 0, "delta": {}, "finish_reason": reason}]}


def usage_record(prompt: int, completion: int) -> dict:
    return {
        "choices": [],
        "usage": {
            "prompt_tokens": prompt,
            "completion_tokens": completion,
            "total_tokens": prompt + completion,
        },
    }


def sse_lines(*records, done: bool = True) -> list[str]:
    """Frame records the way a server does: data line, then blank line."""
    lines = []
    for record in records:
        payload = record if isinstance(record, str) else json.dumps(record)
        lines.append(f"data: {payload}")
        lines.append("")
    if done:
        lines.append("data: [DONE]")
        lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Transport and sink doubles
# ---------------------------------------------------------------------------

class FakeLineSource:
    """Async line source over a fixed list. Counts lines handed out.

    If *error* is given it is raised once the lines are used up, as a
    dropped connection would. With *stall* the source instead waits
    forever after its lines, like a server that goes quiet.
    """

    def __init__(self, lines, error: BaseException | None = None, stall: bool = False):
        self._lines = list(lines)
        self._error = error
        self._stall = stall
        self.reads = 0
        self.closed = False
        self.stall_abandoned = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        try:
            for line in self._lines:
                self.reads += 1
                yield line
            if self._stall:
                try:
                    await asyncio.sleep(3600)
                except asyncio.CancelledError:
                    self.stall_abandoned = True
                    raise
            if self._error is not None:
                raise self._error
        finally:
            self.closed = True


class RecordingSink:
    """StreamSink that records every callback in order."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    @property
    def tokens(self) -> list[str]:
        return [value for kind, value in self.calls if kind == "token"]

    @property
    def usages(self) -> list:
        return [value for kind, value in self.calls if kind == "usage"]

    def on_token(self, text):
        self.calls.append(("token", text))

    def on_usage(self, usage):
        self.calls.append(("usage", usage))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_source():
    """Factory fixture: ``make_source(*records, done=True, error=None, stall=False)``."""
    def _make(*records, done=True, error=None, stall=False):
        return FakeLineSource(
            sse_lines(*records, done=done), error=error, stall=stall,
        )
    return _make
