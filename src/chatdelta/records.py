"""Typed view of a single ``chat.completion.chunk`` record.

Every field is optional. Values of the wrong JSON type are read as
``None`` instead of failing validation, because servers differ in which
optional fields they populate. Only syntactically invalid JSON is an
error.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator

from chatdelta.errors import StreamDecodeError
from chatdelta.models import LenientInt, Usage, lenient

logger = logging.getLogger(__name__)

LenientStr = Annotated[str | None, lenient(str)]


def _objects_only(value: Any) -> list | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)]


def _objects_or_none(value: Any) -> list | None:
    # Keeps positions so that choices[0] still means the first entry.
    if not isinstance(value, list):
        return None
    return [item if isinstance(item, dict) else None for item in value]


class FunctionDelta(BaseModel):
    name: LenientStr = None
    arguments: LenientStr = None


class ToolCallDelta(BaseModel):
    index: LenientInt = None
    id: LenientStr = None
    function: Annotated[FunctionDelta | None, lenient(dict)] = None


class ChoiceDelta(BaseModel):
    content: LenientStr = None
    tool_calls: Annotated[
        list[ToolCallDelta] | None, BeforeValidator(_objects_only)
    ] = None


class Choice(BaseModel):
    delta: Annotated[ChoiceDelta | None, lenient(dict)] = None
    finish_reason: LenientStr = None


class ChunkRecord(BaseModel):
    choices: Annotated[
        list[Choice | None] | None, BeforeValidator(_objects_or_none)
    ] = None
    usage: Annotated[Usage | None, lenient(dict)] = None

    @property
    def first_choice(self) -> Choice | None:
        if not self.choices:
            return None
        return self.choices[0]


def parse_record(payload: str) -> ChunkRecord:
    """Parse one event payload.

    Raises:
        StreamDecodeError: If the payload is not valid JSON or is not
            a JSON object.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed stream record: {e}")
        raise StreamDecodeError(
            f"Invalid JSON in stream record: {e}", payload
        ) from e
    if not isinstance(data, dict):
        logger.warning(
            f"Stream record is a JSON {type(data).__name__}, not an object"
        )
        raise StreamDecodeError(
            f"Expected a JSON object, got {type(data).__name__}", payload
        )
    return ChunkRecord.model_validate(data)
