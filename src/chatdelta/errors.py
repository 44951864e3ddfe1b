"""Exceptions raised while decoding a streamed chat completion.

Transport failures are not represented here: whatever the line source
raises (``httpx`` errors, ``openai.APIStatusError``) reaches the caller
unchanged.
"""


class ChatDeltaError(Exception):
    """Base class for errors raised by chatdelta."""


class StreamCancelledError(ChatDeltaError):
    """Raised when the caller cancels a decode through a CancelToken."""

    def __init__(self, message: str = "Stream decode was cancelled"):
        super().__init__(message)


class StreamDecodeError(ChatDeltaError):
    """Raised when an event payload is not a JSON object.

    The whole decode is abandoned; later records are not trusted to
    resynchronise.
    """

    def __init__(self, message: str, payload: str):
        super().__init__(message)
        self.payload = payload
