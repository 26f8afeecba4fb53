"""JSON framing for protocol messages.

Hides the serialization format: callers exchange typed models, the codec
turns them into compact JSON text frames and back. Every decoding failure is
reported as ProtocolError so receivers can discard exactly one frame.
"""

import json
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from .models import ClientMessage, StreamChunk

_chunk_adapter: TypeAdapter[Any] = TypeAdapter(StreamChunk)
_client_adapter: TypeAdapter[Any] = TypeAdapter(ClientMessage)


class ProtocolError(ValueError):
    """A frame could not be decoded into a known protocol message."""

    def __init__(self, message: str, raw: str | bytes | None = None):
        super().__init__(message)
        self.raw = raw


def _encode(message: BaseModel) -> str:
    return json.dumps(
        message.model_dump(mode="json", exclude_none=True),
        separators=(",", ":"),
        ensure_ascii=False,
    )


def encode_chunk(chunk: BaseModel) -> str:
    """Serialize a server-to-client chunk."""
    return _encode(chunk)


def encode_client_message(message: BaseModel) -> str:
    """Serialize a client-to-server message."""
    return _encode(message)


def _load(raw: str | bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # ValueError covers bad JSON, bad UTF-8 and oversized integer literals
        raise ProtocolError(f"malformed JSON frame: {e}", raw) from e
    if not isinstance(payload, dict):
        raise ProtocolError("frame is not a JSON object", raw)
    if "type" not in payload:
        raise ProtocolError("frame has no 'type' tag", raw)
    return payload


def _validate(adapter: TypeAdapter[Any], raw: str | bytes) -> Any:
    payload = _load(raw)
    try:
        return adapter.validate_python(payload)
    except ValidationError as e:
        tag = payload.get("type")
        raise ProtocolError(f"invalid '{tag}' frame: {e.error_count()} error(s): {e.errors()[0]['msg']}", raw) from e


def decode_chunk(raw: str | bytes) -> Any:
    """Parse a server-to-client frame into a StreamChunk variant.

    Raises:
        ProtocolError: If the frame is malformed or carries an unknown tag
    """
    return _validate(_chunk_adapter, raw)


def decode_client_message(raw: str | bytes) -> Any:
    """Parse a client-to-server frame into a ClientMessage variant.

    Raises:
        ProtocolError: If the frame is malformed or carries an unknown tag
    """
    return _validate(_client_adapter, raw)
