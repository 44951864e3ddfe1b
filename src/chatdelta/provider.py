"""Streaming chat requests against OpenAI-compatible servers.

The provider only builds the request and hands the raw SSE lines of the
response to :func:`~chatdelta.streaming.decode_stream`. It never retries:
a non-success status surfaces as the client's ``openai.APIStatusError``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from openai import AsyncOpenAI
from pydantic import BaseModel

from chatdelta.cancellation import CancelToken
from chatdelta.errors import StreamCancelledError
from chatdelta.instrumentation import (
    record_error,
    record_finish_reason,
    record_usage,
    stream_span,
)
from chatdelta.models import StreamResult, Usage
from chatdelta.streaming import decode_stream

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    model: str
    messages: list[dict]
    tools: list[dict] | None = None
    tool_choice: str | dict | None = None
    temperature: float | None = None

    def to_stream_payload(self) -> dict:
        """Request body with streaming and in-stream usage turned on."""
        payload = self.model_dump(exclude_none=True)
        payload["stream"] = True
        payload["stream_options"] = {"include_usage": True}
        return payload


class OpenAICompatibleProvider:
    """Streams single assistant turns from a chat completions endpoint.

    Args:
        base_url: API root such as ``http://localhost:11434/v1``. Falls
            back to ``OPENAI_BASE_URL``, then to the OpenAI default.
        api_key: Falls back to ``OPENAI_API_KEY``, then to ``"DUMMY"``
            for local servers that ignore it.
        client: A preconfigured ``AsyncOpenAI`` client; the other
            arguments are ignored when given.
        max_retries: Passed to the client. Defaults to no retries.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
        max_retries: int = 0,
        timeout: float = 600.0,
    ):
        if client is None:
            if not base_url:
                base_url = os.getenv("OPENAI_BASE_URL")
            if not api_key:
                api_key = os.getenv("OPENAI_API_KEY") or "DUMMY"
            client = AsyncOpenAI(
                base_url=base_url,
                api_key=api_key,
                max_retries=max_retries,
                timeout=timeout,
            )
        self.client = client

    async def stream_chat_once(
        self,
        request: ChatRequest,
        *,
        cancel: CancelToken | None = None,
        on_token: Callable[[str], None] | None = None,
        on_usage: Callable[[Usage], None] | None = None,
    ) -> StreamResult:
        """Send *request* and decode the streamed reply.

        If the model calls tools they are returned in
        ``StreamResult.tool_calls`` and ``content`` may be empty. Text
        tokens are passed to *on_token* as they arrive.
        """
        payload = request.to_stream_payload()
        async with stream_span("openai", request.model) as span:
            try:
                async with self.client.chat.completions.with_streaming_response.create(
                    **payload
                ) as response:
                    result = await decode_stream(
                        response.iter_lines(),
                        cancel=cancel,
                        on_token=on_token,
                        on_usage=on_usage,
                    )
            except StreamCancelledError:
                logger.info(f"Streamed completion for {request.model} was cancelled")
                raise
            except Exception as e:
                logger.error(f"Streamed completion for {request.model} failed: {e}")
                record_error(span, e)
                raise
            record_usage(span, result.usage)
            record_finish_reason(span, result.finish_reason)
        return result
