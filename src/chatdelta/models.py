"""Result types produced by a stream decode."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict


def lenient(*kinds: type) -> BeforeValidator:
    """Validator that maps a value of any other JSON type to ``None``.

    ``bool`` is rejected for ``int`` fields even though it subclasses it.
    """

    def check(value: Any) -> Any:
        if isinstance(value, bool) and bool not in kinds:
            return None
        return value if isinstance(value, kinds) else None

    return BeforeValidator(check)


LenientInt = Annotated[int | None, lenient(int)]


class Usage(BaseModel):
    """Token usage reported by the server.

    Unknown fields are kept as-is so the snapshot mirrors whatever the
    server sent. The well-known counters are typed for convenience.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    prompt_tokens: LenientInt = None
    completion_tokens: LenientInt = None
    total_tokens: LenientInt = None


class FunctionCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    arguments: str = ""


class ToolCall(BaseModel):
    """A finalized tool invocation."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class StreamResult(BaseModel):
    """The assembled assistant turn.

    ``tool_calls`` is ``None`` when the stream carried no tool-call
    deltas at all, and a non-empty tuple otherwise.
    """

    model_config = ConfigDict(frozen=True)

    content: str = ""
    tool_calls: tuple[ToolCall, ...] | None = None
    finish_reason: str | None = None
    usage: Usage | None = None

    @property
    def has_tool_calls(self) -> bool:
        return self.tool_calls is not None

    def to_message(self) -> dict:
        """Render as an assistant message for the next request."""
        message: dict[str, Any] = {
            "role": "assistant",
            "content": self.content,
        }
        if self.tool_calls is not None:
            message["tool_calls"] = [
                {
                    "id": t.id,
                    "type": t.type,
                    "function": {
                        "arguments": t.function.arguments,
                        "name": t.function.name,
                    },
                }
                for t in self.tool_calls
            ]
        return message
