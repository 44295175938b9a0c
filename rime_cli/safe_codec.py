"""
Safe JSON codec for the line protocol.

Encodes responses as compact single-line UTF-8 JSON and decodes request
lines with an explicit size bound, so a malformed or oversized line turns
into a CodecError instead of an unexpected exception in the main loop.
"""

import json
from typing import Any, Optional, Union


class CodecError(Exception):
    """Raised when encoding/decoding fails."""

    pass


def _has_pydantic_model_dump(obj: Any) -> bool:
    """
    Check if object is a Pydantic v2 model with model_dump method.

    Why: protocol models carry their own field order and nullability, so
    they are serialized through their built-in mechanism.
    """
    model_dump = getattr(obj, 'model_dump', None)
    return callable(model_dump)


class SafeCodec:
    """
    Compact JSON codec with explicit edge case handling.

    This codec provides:
    - Single-line compact output (no insignificant whitespace, no newlines)
    - Non-ASCII text written as UTF-8 rather than \\u escapes
    - Rejection of NaN/Infinity
    - Payload size limits on both directions
    - Pydantic model serialization

    Args:
        max_payload_bytes: Maximum payload size in bytes (default 64KiB),
            or None for no limit.

    Example:
        >>> codec = SafeCodec()
        >>> codec.encode({"commit": None})
        '{"commit":null}'
        >>> codec.decode(b'{"keycode": 97, "modifiers": 0}')
        {'keycode': 97, 'modifiers': 0}
    """

    def __init__(self, max_payload_bytes: Optional[int] = 64 * 1024) -> None:
        self.max_payload_bytes = max_payload_bytes

    def encode(self, value: Any) -> str:
        """
        Encode a Python value to a single-line JSON string.

        Args:
            value: The Python value to encode. ``None`` encodes to ``null``.

        Returns:
            A compact JSON string without a trailing newline.

        Raises:
            CodecError: If encoding fails due to:
                - NaN/Infinity values (rejected by json.dumps)
                - Payload exceeds max_payload_bytes
                - Value contains non-serializable types
        """
        try:
            result = json.dumps(
                value,
                default=self._default_encoder,
                allow_nan=False,
                ensure_ascii=False,
                separators=(',', ':'),
            )
        except (TypeError, ValueError) as exc:
            raise CodecError(f'JSON encoding failed: {exc}') from exc

        payload_bytes = len(result.encode('utf-8'))
        if self.max_payload_bytes is not None and payload_bytes > self.max_payload_bytes:
            raise CodecError(f'Payload exceeds {self.max_payload_bytes} bytes')

        return result

    def decode(self, payload: Union[str, bytes]) -> Any:
        """
        Decode one JSON request line to a Python value.

        Args:
            payload: The JSON text, as ``str`` or UTF-8 ``bytes``. Surrounding
                whitespace, including the line terminator, is ignored.

        Returns:
            The decoded Python value.

        Raises:
            CodecError: If decoding fails due to:
                - Payload exceeds max_payload_bytes
                - Invalid UTF-8
                - Invalid JSON syntax
        """
        if isinstance(payload, (bytes, bytearray)):
            payload_bytes = len(payload)
        else:
            payload_bytes = len(payload.encode('utf-8'))
        if self.max_payload_bytes is not None and payload_bytes > self.max_payload_bytes:
            raise CodecError(f'Payload exceeds {self.max_payload_bytes} bytes')

        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = bytes(payload).decode('utf-8')
            except UnicodeDecodeError as exc:
                raise CodecError(f'Payload is not valid UTF-8: {exc}') from exc

        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise CodecError(f'JSON decoding failed: {exc}') from exc

    def _default_encoder(self, obj: Any) -> Any:
        """
        Handle protocol types during JSON encoding.

        Raises:
            TypeError: If the object cannot be serialized.
        """
        if _has_pydantic_model_dump(obj):
            return obj.model_dump(mode='json')

        raise TypeError(
            f'Object of type {type(obj).__name__} is not JSON serializable'
        )

