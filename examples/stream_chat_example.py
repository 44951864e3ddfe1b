"""Stream one assistant turn and print tokens as they arrive.

Demonstrates:
- Building a ChatRequest with a tool definition
- Live token and usage callbacks
- Cancelling a stream with a CancelToken (Ctrl+C)
- Optional console tracing

Usage:
    uv run --env-file=.env examples/stream_chat_example.py --model gpt-4o-mini "What is the weather in Oslo?"
    uv run examples/stream_chat_example.py --base-url http://localhost:8000/v1 --model Qwen/Qwen3-8B --trace "Hi"
"""

import argparse
import asyncio
import json
import signal

from chatdelta.cancellation import CancelToken
from chatdelta.errors import StreamCancelledError
from chatdelta.provider import ChatRequest, OpenAICompatibleProvider

WEATHER_TOOL = {
    "type": "function",
    "function": {
        "name": "get_weather",
        "description": "Current weather for a city.",
        "parameters": {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    },
}


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from chatdelta.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


async def main(args):
    provider = OpenAICompatibleProvider(base_url=args.base_url)
    request = ChatRequest(
        model=args.model,
        messages=[{"role": "user", "content": args.prompt}],
        tools=[WEATHER_TOOL],
        tool_choice="auto",
    )

    cancel = CancelToken()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.cancel)

    try:
        result = await provider.stream_chat_once(
            request,
            cancel=cancel,
            on_token=lambda text: print(text, end="", flush=True),
            on_usage=lambda usage: print(f"\n[usage] {usage.model_dump(exclude_none=True)}"),
        )
    except StreamCancelledError:
        print("\n[cancelled]")
        return

    print(f"\n[finish_reason] {result.finish_reason}")
    for tc in result.tool_calls or []:
        print(f"[tool_call] {tc.function.name}({json.loads(tc.function.arguments or '{}')})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("prompt")
    parser.add_argument("--model", default="gpt-4o-mini")
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--trace", action="store_true")
    args = parser.parse_args()
    if args.trace:
        setup_tracing("chatdelta-example")
    asyncio.run(main(args))
